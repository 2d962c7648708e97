"""
LoC Tracker Service.

This service is responsible for:
- Watching tracked working trees for filesystem changes
- Computing pending and same-day committed line counts per repository
- Recording one change record per repository per reconciliation cycle
- Printing per-repository and total LoC summaries
"""

__version__ = "1.0.0"
__description__ = "Git lines-of-code churn tracking service"

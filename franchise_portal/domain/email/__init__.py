"""Email domain - template storage, test sends and seeding"""

# Note: the dispatch pipeline itself lives in franchise_portal/email_service.py
# and the layouts in franchise_portal/email_templates.py; both are imported by
# this package, so nothing is re-exported here.

__all__ = []

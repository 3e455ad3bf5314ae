"""Sessions domain - recurring weekly lessons"""

__all__ = []

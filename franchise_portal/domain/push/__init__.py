"""Push domain - FCM broadcast notifications"""

__all__ = []

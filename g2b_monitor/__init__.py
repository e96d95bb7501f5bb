"""G2B bid monitor: watches the 나라장터 portal for new announcements."""

__version__ = "1.0.0"

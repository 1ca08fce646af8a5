"""MediSafe backend - medical document vault with secure, time-limited sharing."""

__version__ = "0.1.0"

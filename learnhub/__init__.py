"""LearnHub - role-based learning management API."""

__version__ = "0.1.0"

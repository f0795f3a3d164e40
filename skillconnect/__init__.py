"""SkillConnect user platform service: REST API and bulk user operations."""

__version__ = "1.0.0"

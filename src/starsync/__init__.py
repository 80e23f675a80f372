"""star-sync: mirror GitHub stars into a Notion database."""

__version__ = "1.0.0"

"""
Main entry point for the holiday CRM booking core.
"""

from holiday_crm.cli import app
from holiday_crm.utils.config import configure_logging, get_config


def main() -> int:
    """Load configuration, set up logging and hand over to the CLI."""
    try:
        config = get_config()
    except ValueError as e:
        print(f"❌ Failed to load configuration: {e}")
        return 1

    configure_logging(config.log_level)
    app()
    return 0


if __name__ == "__main__":
    exit(main())

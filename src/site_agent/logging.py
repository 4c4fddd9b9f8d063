import logging


def configure_logging(level: str = "INFO") -> None:
    """
    Configure logging for the Site Agent.

    Unknown level names fall back to INFO.
    """
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

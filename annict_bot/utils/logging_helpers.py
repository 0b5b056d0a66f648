"""
Logging helpers for the aggregation pipeline.

Keeps the per-run progress lines in one format so a single request can be
followed through the log.
"""
import logging


def log_section_start(logger: logging.Logger, section_name: str) -> None:
    """Log that a pipeline run has begun."""
    logger.info(f"Starting: {section_name}")


def log_section_end(logger: logging.Logger, section_name: str) -> None:
    """Log that a pipeline run has finished."""
    logger.info(f"Completed: {section_name}")


def log_date_filter_summary(
    logger: logging.Logger,
    fetched_count: int,
    kept_count: int,
    date_label: str
) -> None:
    """
    Log how many programs survived the "today" filter.

    Args:
        logger: Logger instance
        fetched_count: Programs returned by the source
        kept_count: Programs airing on the reference date
        date_label: Formatted reference date
    """
    logger.info(
        f"Date filter ({date_label}): kept {kept_count} of {fetched_count} programs"
    )


def log_validation_summary(
    logger: logging.Logger,
    label: str,
    checked_count: int,
    invalid_count: int
) -> None:
    """
    Log image validation results for one program list.

    Args:
        logger: Logger instance
        label: Name of the list being validated
        checked_count: Number of image URLs checked
        invalid_count: Number of image URLs cleared
    """
    if invalid_count:
        logger.info(
            f"Image validation ({label}): {checked_count} checked, {invalid_count} cleared"
        )
    else:
        logger.debug(f"Image validation ({label}): all {checked_count} images valid")

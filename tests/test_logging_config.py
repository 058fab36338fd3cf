import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.ingestion",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Reading logged.",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_extras_in_order() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s | %(message)s")

    line = formatter.format(_record(outcome="logged", value=8.0, mode=None, unrelated="x"))

    assert line == "INFO | Reading logged. | value=8.0 outcome=logged"


def test_formatter_without_extras_leaves_message_alone() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["day"])

    assert formatter.format(_record(value=1.0)) == "Reading logged."

import logging

from shared.logging.logging_setup import LOG_FORMAT, ColoredFormatter, CustomFormatter


def _record(level: int, msg: str, *args, color: str | None = None) -> logging.LogRecord:
    record = logging.LogRecord("tests", level, __file__, 1, msg, args, None)
    if color is not None:
        record.color = color
    return record


class TestFormatters:
    def test_levels_are_marked(self):
        formatter = CustomFormatter("UTC", "%(message)s")
        assert formatter.format(_record(logging.ERROR, "failed %s", "doc1")) == "⛔ failed doc1"
        assert formatter.format(_record(logging.WARNING, "slow")) == "⚠️ slow"
        assert formatter.format(_record(logging.INFO, "ok")) == "ok"

    def test_mismatched_args_fall_back_to_template(self):
        formatter = CustomFormatter("UTC", "%(message)s")
        assert formatter.format(_record(logging.INFO, "%d docs", "many")) == "%d docs"

    def test_color_only_when_requested(self):
        formatter = ColoredFormatter("UTC", LOG_FORMAT)
        assert formatter.format(_record(logging.INFO, "done", color="green")).startswith("\033[32m")
        assert "\033[" not in formatter.format(_record(logging.INFO, "done"))
        assert "\033[" not in formatter.format(_record(logging.INFO, "done", color="unknown"))


class TestColorLogger:
    def test_color_travels_as_record_attribute(self, logger, caplog):
        with caplog.at_level(logging.INFO, logger="tests"):
            logger.info("Document %s completed", "a", color="green")
            logger.info("plain")

        colored, plain = caplog.records
        assert colored.getMessage() == "Document a completed"
        assert colored.color == "green"
        assert not hasattr(plain, "color")

    def test_exception_keeps_traceback(self, logger, caplog):
        with caplog.at_level(logging.ERROR, logger="tests"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("Worker crashed", color="red")

        [record] = caplog.records
        assert record.exc_info[0] is RuntimeError

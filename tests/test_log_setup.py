import logging

from fastsync.log_setup import LogConfig, setup, shutdown


class _Recorder(logging.Handler):
    def __init__(self):
        super().__init__()
        self.flushed = 0
        self.closed = False

    def emit(self, record):
        pass

    def flush(self):
        self.flushed += 1

    def close(self):
        self.closed = True
        super().close()


def test_setup_runs_once_and_returns_same_logger():
    first, _ = setup("logs", "")
    second, _ = setup("elsewhere", "other.log")
    assert first is second


def test_setup_returns_warning_list_copy():
    _, warnings = setup("logs", "")
    warnings.append("changed")
    _, again = setup("logs", "")
    assert "changed" not in again


def test_info_goes_to_stdout_and_errors_to_stderr(capsys):
    logger, _ = setup("logs", "")
    logger.info("plain message here")
    logger.error("failure message here")
    captured = capsys.readouterr()
    assert "plain message here" in captured.out
    assert "failure message here" in captured.err
    assert "failure message here" not in captured.out


def test_logger_is_named_after_service():
    logger, _ = setup("logs", "")
    assert logger.name == LogConfig().service_name


def test_default_config_disables_file_and_otel():
    config = LogConfig()
    assert config.file_enabled is False
    assert config.otel_enabled is False
    assert config.otel_batch_size == 512


def test_shutdown_closes_and_removes_handlers():
    target = logging.getLogger("fastsync.tests.shutdown")
    recorder = _Recorder()
    target.addHandler(recorder)
    shutdown(target)
    assert recorder not in target.handlers
    assert recorder.closed is True
    assert recorder.flushed == 1


def test_shutdown_of_none_leaves_nothing_to_do():
    assert shutdown(None) is None
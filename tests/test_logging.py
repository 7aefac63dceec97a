import structlog

from triptailor.storage import postgis
from triptailor.utils import retry
from triptailor.utils.logger import bind_trip_context, clear_trip_context


def test_modules_log_through_project_helper():
    for module in (retry, postgis):
        assert "structlog" not in vars(module)
        assert "get_logger" in vars(module)


def test_trip_context_is_bound_and_cleared():
    bind_trip_context(7, locale="pl")
    assert structlog.contextvars.get_contextvars() == {"trip_id": 7, "locale": "pl"}

    clear_trip_context()
    assert structlog.contextvars.get_contextvars() == {}

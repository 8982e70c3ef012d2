import logging

from django.test import SimpleTestCase


def _access_record(msg: str, *, name: str = "django.server") -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


class LoggingFilterTests(SimpleTestCase):
    def test_health_endpoint_filter(self) -> None:
        from config.logging_filters import HealthEndpointFilter

        filt = HealthEndpointFilter()

        self.assertFalse(filt.filter(_access_record('"GET /healthz HTTP/1.1" 200 12')))
        self.assertTrue(filt.filter(_access_record('"GET /readyz HTTP/1.1" 503 40')))
        self.assertTrue(filt.filter(_access_record('"GET /cik/elections HTTP/1.1" 200 12')))

    def test_health_endpoint_filter_handles_gunicorn_format(self) -> None:
        from config.logging_filters import HealthEndpointFilter

        filt = HealthEndpointFilter()

        record_ok = _access_record(
            '- - - [19/Oct/2026:10:49:08 +0000] "GET /readyz HTTP/1.1" 200 37 "-" "Go-http-client/1.1"',
            name="gunicorn.access",
        )
        self.assertFalse(filt.filter(record_ok))

# backend/src/costeno/observability/logging_filters.py
import logging


class ContextLogFilter(logging.Filter):
    """
    Completa 'correlation_id' y 'session_id' en el LogRecord si faltan,
    para que el formateador siempre pueda usar %(correlation_id)s y %(session_id)s
    (por ejemplo, en registros creados antes de instalar la LogRecordFactory).
    """
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        if not hasattr(record, "session_id"):
            record.session_id = "-"
        return True

import logging
import os
from logging.handlers import RotatingFileHandler
from .config import Settings

IMPORT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
IMPORT_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# SQL-движок и HTTP-клиент шумят на INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "urllib3")


def setup_logging(settings: Settings, console: bool = True) -> str:
    """
    Журнал импорта вопросов: <log_dir>/<log_file>, по умолчанию logs/question_import.log.

    В файл попадают переходы сессии (файл принят/отклонён, сверка картинок),
    ошибки по строкам с номером строки, результаты загрузки картинок
    и итоговая сводка. Файл ротируется по log_max_bytes.
    При console=False (режим --json) лог пишется только в файл,
    чтобы stdout оставался чистым JSON-отчётом.

    Возвращает путь к файлу журнала.
    """
    os.makedirs(settings.log_dir, exist_ok=True)
    log_path = os.path.join(settings.log_dir, settings.log_file)
    formatter = logging.Formatter(fmt=IMPORT_LOG_FORMAT, datefmt=IMPORT_LOG_DATEFMT)

    import_log = RotatingFileHandler(
        log_path,
        maxBytes=settings.log_max_bytes,
        backupCount=settings.log_backup_count,
        encoding="utf-8",
    )
    handlers = [import_log]
    if console:
        handlers.append(logging.StreamHandler())

    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    root.handlers.clear()
    for h in handlers:
        h.setFormatter(formatter)
        root.addHandler(h)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return log_path

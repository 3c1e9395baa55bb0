# agency_api/utils/log.py
# Event logging: one file per day, shared by every target

import os
import datetime
import logging
from aiologger import Logger
from aiologger.handlers.files import AsyncFileHandler

from agency_api.config import settings

# keys whose values never reach the log files
SECRET_KEYS = {"password", "password_hash", "token", "session", "cookie", "authorization", "api_key"}


class Log:
    def __init__(self, log_dir: str | None = None):
        self.log_dir = log_dir or settings.LOG_DIR
        os.makedirs(self.log_dir, exist_ok=True)
        self.current = None   # {"path": ..., "logger": ...}
        self.log_print = str(settings.LOG_PRINT).lower() in ("1", "true", "yes")

    def build_log_path(self, now: datetime.datetime) -> str:
        """
        Path of the log file for the given day:
        logs/2026/10/18.log
        """
        base_dir = os.path.join(self.log_dir, f"{now.year}", f"{now:%m}")
        os.makedirs(base_dir, exist_ok=True)
        return os.path.join(base_dir, f"{now:%d}.log")

    async def get_logger(self, now: datetime.datetime) -> Logger:
        """Async logger of the current day; rotates when the date changes."""
        log_path = self.build_log_path(now)

        if self.current is None or self.current["path"] != log_path:
            previous = self.current
            handler = AsyncFileHandler(filename=log_path, mode="a", encoding="utf-8")
            day_logger = Logger(name=f"agency_{now:%Y%m%d}")
            day_logger.add_handler(handler)
            self.current = {"path": log_path, "logger": day_logger}

            if previous is not None:
                await previous["logger"].shutdown()

        return self.current["logger"]

    def format_line(self, now: datetime.datetime, target: str, message: str, data: dict | None) -> str:
        line = f"{now:%d.%m.%Y %H:%M:%S} {target}: {message}"
        if data:
            line += f": {self.safe_serialize(data)}"
        return line

    # Async
    async def log_info(
        self,
        target: str = "",
        message: str = "",
        data: dict | None = None,
        is_console: bool = None,
    ):
        now = datetime.datetime.now()
        line = self.format_line(now, target, message, data)

        day_logger = await self.get_logger(now)
        await day_logger.info(line)

        should_print = self.log_print if is_console is None else is_console
        if should_print:
            print(line)

    async def log_warning(self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = None):
        await self.log_info(target, f"WARNING: {message}", data, is_console)

    async def log_error(
        self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = True
    ):
        await self.log_info(target, f"ERROR: {message}", data, is_console)

    # Sync, used before the event loop owns the logger (startup, scripts)
    def log_info_sync(
        self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = None
    ):
        now = datetime.datetime.now()
        log_path = self.build_log_path(now)
        line = self.format_line(now, target, message, data)

        logger = logging.getLogger("agency_sync")
        logger.setLevel(logging.INFO)
        logger.propagate = False

        if not any(getattr(h, "baseFilename", None) == os.path.abspath(log_path) for h in logger.handlers):
            for old in list(logger.handlers):
                logger.removeHandler(old)
                old.close()
            handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
            handler.setFormatter(logging.Formatter("%(message)s"))
            logger.addHandler(handler)

        logger.info(line)

        should_print = self.log_print if is_console is None else is_console
        if should_print:
            print(line)

    def log_warning_sync(self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = None):
        self.log_info_sync(target, f"WARNING: {message}", data, is_console)

    def log_error_sync(
        self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = None
    ):
        self.log_info_sync(target, f"ERROR: {message}", data, is_console)

    def safe_serialize(self, obj):
        """
        Turns an object into something printable:
        - dict, list, tuple recursively, secret keys masked
        - Pydantic models through model_dump
        - SQLAlchemy rows through their public attributes
        - anything else becomes its type name
        """
        if obj is None:
            return None
        elif isinstance(obj, (str, int, float, bool)):
            return obj
        elif isinstance(obj, (datetime.datetime, datetime.date)):
            return obj.isoformat()
        elif isinstance(obj, dict):
            return {
                k: "***" if str(k).lower() in SECRET_KEYS else self.safe_serialize(v)
                for k, v in obj.items()
            }
        elif isinstance(obj, (list, tuple, set)):
            return [self.safe_serialize(v) for v in obj]
        elif hasattr(obj, "model_dump"):  # Pydantic
            return self.safe_serialize(obj.model_dump())
        elif hasattr(obj, "__dict__"):
            return self.safe_serialize({k: v for k, v in vars(obj).items() if not k.startswith("_")})
        else:
            return f"<{type(obj).__name__}>"

    async def shutdown(self):
        if self.current is not None:
            await self.current["logger"].shutdown()
            self.current = None

"""
Logging utilities for the HTTP recorder.
"""
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Loggers that log every request, too chatty next to a recorder
NOISY_LOGGERS = ("httpx", "httpcore")


def getLogLevelByStr(levelStr: str, default: Optional[int] = None) -> Optional[int]:
    """Get log level by string."""
    level = getattr(logging, str(levelStr).upper(), None)
    if not isinstance(level, int):
        logger.error(f"Invalid log level '{levelStr}'")
        return default
    return level


def configureLogger(localLogger: logging.Logger, config: Dict[str, Any]) -> None:
    """Configure a logger from a [logging] or [logging.logger.<name>] table.

    Recognized keys: level, format, console, console-level,
    file, file-level, rotate. Existing handlers are replaced.
    """

    if "level" in config:
        logLevel = getLogLevelByStr(config["level"])
        if logLevel is not None:
            localLogger.setLevel(logLevel)

    logLevel = localLogger.getEffectiveLevel()
    formatter = logging.Formatter(config.get("format", DEFAULT_LOG_FORMAT))

    # Clear existing handlers to avoid duplicates
    for handler in localLogger.handlers[:]:
        localLogger.removeHandler(handler)

    if config.get("console", False):
        consoleLogLevel = logLevel
        if "console-level" in config:
            consoleLogLevel = getLogLevelByStr(config["console-level"], logLevel)
        consoleHandler = logging.StreamHandler()
        consoleHandler.setLevel(consoleLogLevel or logLevel)
        consoleHandler.setFormatter(formatter)
        localLogger.addHandler(consoleHandler)
        logger.info(f"Logging {localLogger.name} to console, logLevel: {consoleHandler.level}")

    if "file" in config:
        logFile = config["file"]
        try:
            Path(logFile).parent.mkdir(parents=True, exist_ok=True)

            fileLogLevel = logLevel
            if "file-level" in config:
                fileLogLevel = getLogLevelByStr(config["file-level"], logLevel)

            fileHandler: logging.Handler
            if config.get("rotate", False):
                fileHandler = TimedRotatingFileHandler(
                    filename=logFile,
                    when="midnight",
                    interval=1,
                    backupCount=7,
                    encoding="utf-8",
                )
            else:
                fileHandler = logging.FileHandler(logFile, encoding="utf-8")

            fileHandler.setLevel(fileLogLevel or logLevel)
            fileHandler.setFormatter(formatter)
            localLogger.addHandler(fileHandler)
            logger.info(f"Logging {localLogger.name} to file: {logFile}, logLevel: {fileHandler.level}")
        except OSError as e:
            logger.error(f"Failed to setup file logging for {localLogger.name}: {e}")


def initLogging(config: Dict[str, Any]) -> None:
    """Configure logging from the [logging] table of the recorder config."""
    rootLogger = logging.getLogger()
    rootLogger.setLevel(logging.INFO)

    configureLogger(rootLogger, config)
    logLevel = rootLogger.getEffectiveLevel()

    if logLevel < logging.WARNING:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    for loggerName, loggerConfig in config.get("logger", {}).items():
        logger.debug(f"Configuring logger '{loggerName}' with config {loggerConfig}")
        configureLogger(logging.getLogger(loggerName), loggerConfig)

    logger.info(f"Logging configured: root level={logLevel}")

"""
logger.py

Centralized logging configuration for BannerWatch.
Provides consistent logging across all modules.
"""

import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from datetime import datetime

from utils.config import config


class LoggerSetup:
    """
    Configures application-wide logging with both console and file output.
    """
    
    _initialized = False
    
    @classmethod
    def setup(cls) -> logging.Logger:
        """
        Initialize and return the main application logger.
        Only configures once, subsequent calls return existing logger.
        """
        logger = logging.getLogger("BannerWatch")
        
        if cls._initialized:
            return logger
        
        # Get logging configuration
        log_level = config.get("logging.level", "INFO")
        console_output = config.get("logging.console_output", True)
        file_output = config.get("logging.file_output", True)
        logs_dir = config.get("paths.logs_dir", "logs")
        max_bytes = config.get("logging.max_log_size_mb", 10) * 1024 * 1024
        backup_count = config.get("logging.backup_count", 5)
        
        # Set log level
        numeric_level = getattr(logging, str(log_level).upper(), logging.INFO)
        logger.setLevel(numeric_level)
        
        # Create formatter (thread name identifies the worker)
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(threadName)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        
        # Console handler on stderr
        if console_output:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(numeric_level)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)
        
        # File handler with rotation
        if file_output:
            logs_path = Path(logs_dir)
            logs_path.mkdir(parents=True, exist_ok=True)
            
            log_file = logs_path / f"bannerwatch_{datetime.now().strftime('%Y%m%d')}.log"
            
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8"
            )
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        
        cls._initialized = True
        logger.debug("Logging system initialized")
        
        return logger

    @classmethod
    def set_level(cls, level: str) -> None:
        """Change the level of the logger and every handler attached to it."""
        logger = logging.getLogger("BannerWatch")
        numeric_level = getattr(logging, level.upper(), logging.INFO)
        logger.setLevel(numeric_level)
        for handler in logger.handlers:
            handler.setLevel(numeric_level)


# Create global logger instance
app_logger = LoggerSetup.setup()

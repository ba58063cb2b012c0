from .config import KopfolioConfig, DatabaseConfig, BackupConfig

__version__ = "0.3.0"
__author__ = "kopfolio"
__url__ = ""

__all__ = ["KopfolioConfig", "DatabaseConfig", "BackupConfig"]

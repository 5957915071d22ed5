"""Exporter exception hierarchy.

Only startup paths raise these. Per-query failures during a scrape are
absorbed by the query functions and never surface as exceptions.
"""

from pathlib import Path


class ExporterError(Exception):
    """Base class for errors that stop the exporter from starting."""


class DuplicateMetricError(ExporterError):
    def __init__(self, fq_name: str):
        self.fq_name = fq_name
        super().__init__(f"Metric '{fq_name}' is declared more than once")


class ConfigFileNotFoundError(ExporterError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Config file not found: {path}")


class DatabaseUnavailableError(ExporterError):
    def __init__(self, target: str, attempts: int):
        self.target = target
        self.attempts = attempts
        super().__init__(f"Database at '{target}' unreachable after {attempts} attempt(s)")


class ServerStartupError(ExporterError):
    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        super().__init__(f"HTTP server failed to start on {host}:{port}")

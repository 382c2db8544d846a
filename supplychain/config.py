"""
Configuration management for the transaction processor.
"""
import json
import os
import logging
from dataclasses import dataclass, asdict
from .addressing import FAMILY_NAME, FAMILY_VERSION


@dataclass
class ProcessorConfig:
    """Transaction family served by the processor."""
    family_name: str = FAMILY_NAME
    family_version: str = FAMILY_VERSION


@dataclass
class DatabaseConfig:
    """Database configuration."""
    path: str = "./supplychain_data"
    write_buffer_size: int = 64 * 1024 * 1024  # 64MB
    max_open_files: int = 1000
    compression: str = "snappy"


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Config:
    """Main configuration."""
    processor: ProcessorConfig
    database: DatabaseConfig
    logging: LoggingConfig

    @classmethod
    def default(cls) -> 'Config':
        """Create default configuration."""
        return cls(
            processor=ProcessorConfig(),
            database=DatabaseConfig(),
            logging=LoggingConfig()
        )

    @classmethod
    def from_file(cls, path: str) -> 'Config':
        """Load configuration from JSON file. Missing sections use defaults."""
        with open(path, 'r') as f:
            data = json.load(f)

        return cls(
            processor=ProcessorConfig(**data.get('processor', {})),
            database=DatabaseConfig(**data.get('database', {})),
            logging=LoggingConfig(**data.get('logging', {}))
        )

    def to_file(self, path: str):
        """Save configuration to JSON file."""
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict:
        return {
            'processor': asdict(self.processor),
            'database': asdict(self.database),
            'logging': asdict(self.logging)
        }


def configure_logging(config: LoggingConfig):
    """Install the root logging configuration for command line entry points."""
    logging.basicConfig(level=getattr(logging, config.level.upper(), logging.INFO),
                        format=config.format)

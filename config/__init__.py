"""Environment configuration"""
from .settings import config, Config, DevelopmentConfig, ProductionConfig
from .testing import TestingConfig

config['testing'] = TestingConfig

__all__ = [
    'config',
    'Config',
    'DevelopmentConfig',
    'ProductionConfig',
    'TestingConfig',
]

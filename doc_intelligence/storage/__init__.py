"""Storage package"""
from .managers import InMemoryStorage, initialize_storage

__all__ = [
    'InMemoryStorage',
    'initialize_storage'
]

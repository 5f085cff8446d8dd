"""Background tasks package"""
from .document_tasks import process_document_background

__all__ = ['process_document_background']

"""API routers package"""
from . import auth, documents, chat, risk, analysis, review, export, health

__all__ = ['auth', 'documents', 'chat', 'risk', 'analysis', 'review', 'export', 'health']

"""API package"""
from .errors import to_http_exception, domain_exception_handler, unhandled_exception_handler

__all__ = ['to_http_exception', 'domain_exception_handler', 'unhandled_exception_handler']

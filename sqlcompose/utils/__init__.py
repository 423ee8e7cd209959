from sqlcompose.utils import logging, schema

__all__ = ("logging", "schema")

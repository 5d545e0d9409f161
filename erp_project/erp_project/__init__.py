# Celery instance is defined in erp_project/celery.py
# It creates celery_app object and points it to Django settings
from .celery import celery_app

# 'from erp_project import *', only exports celery_app
__all__ = ("celery_app",)

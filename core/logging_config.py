"""
Centralized logging configuration, per deployment region
"""
from pathlib import Path


def _rotating_file(path, level):
    return {
        'level': level,
        'class': 'logging.handlers.RotatingFileHandler',
        'filename': path,
        'maxBytes': 1024 * 1024 * 10,  # 10MB
        'backupCount': 5,
        'formatter': 'structured',
    }


def get_logging_config(base_dir, region='default', level='INFO'):
    """
    Console plus rotating files under <base_dir>/logs. Outside the default
    region the file handlers emit JSON lines for log shipping.
    """
    logs_dir = Path(base_dir) / 'logs'
    logs_dir.mkdir(exist_ok=True)

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'verbose': {
                'format': '{levelname} {asctime} {name} {process:d} {thread:d} {message}',
                'style': '{',
            },
            'structured': {
                '()': 'pythonjsonlogger.jsonlogger.JsonFormatter',
                'format': '%(asctime)s %(name)s %(levelname)s %(message)s',
            } if region != 'default' else {
                'format': '{levelname} {asctime} {name} {message}',
                'style': '{',
            },
        },
        'handlers': {
            'console': {
                'level': level,
                'class': 'logging.StreamHandler',
                'formatter': 'verbose',
            },
            'error_file': _rotating_file(logs_dir / f'{region}_errors.log', 'ERROR'),
            'app_file': _rotating_file(logs_dir / f'{region}_app.log', 'INFO'),
            'queue_file': _rotating_file(logs_dir / f'{region}_queue_operations.log', 'INFO'),
        },
        'loggers': {
            'django': {
                'handlers': ['console', 'error_file'],
                'level': 'INFO',
                'propagate': False,
            },
            'django.request': {
                'handlers': ['console', 'error_file'],
                'level': 'ERROR',
                'propagate': False,
            },
            'core': {
                'handlers': ['console', 'app_file', 'error_file'],
                'level': level,
                'propagate': False,
            },
            'queue_management': {
                'handlers': ['console', 'app_file', 'error_file'],
                'level': level,
                'propagate': False,
            },
            # Per-operation timing lines, kept in their own file
            'queue_management.operations': {
                'handlers': ['console', 'queue_file'],
                'level': level,
                'propagate': False,
            },
        },
    }

    return config

"""
Module containing utilities for the scanner modules.
"""

import wrapt

from .exceptions import ReadinessError


def reraise_as(error_cls, context):
    """
    Decorator for coroutine functions that converts unexpected exceptions into ``error_cls``.

    The ``context`` is a format string that is formatted with the arguments of the call
    (excluding ``self`` for methods) and describes what was being attempted. The original
    exception is chained as the cause. Scanner errors already carry their own context, so
    they are re-raised untouched.
    """
    @wrapt.decorator
    async def wrapper(wrapped, instance, args, kwargs):
        try:
            return await wrapped(*args, **kwargs)
        except ReadinessError:
            raise
        except Exception as exc:
            raise error_cls(f'{context.format(*args, **kwargs)}: {exc}') from exc
    return wrapper

import functools
import logging
from reusable_holdout.utils.exceptions import ReusableHoldoutError, CollaboratorFailure

def handle_collaborator_errors(operation_name: str):
    """Decorator that turns foreign exceptions raised by a collaborator into CollaboratorFailure."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ReusableHoldoutError:
                # Re-raise our custom exceptions
                raise
            except Exception as e:
                logger = args[0].logger if args and hasattr(args[0], 'logger') else logging.getLogger()
                logger.error(f"{operation_name} failed: {e}", exc_info=True)
                raise CollaboratorFailure(f"{operation_name} failed: {str(e)}") from e
        return wrapper
    return decorator

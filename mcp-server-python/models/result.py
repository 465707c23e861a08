"""
Result envelope shared by every ledger tool.

Tools return ``{"success": True, "data": ...}`` on success and the
``ToolError.to_dict()`` failure envelope otherwise. Expected business-rule
failures never escape a tool as exceptions.
"""

import functools
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from models.errors import ToolError, create_internal_error
from utils.pydantic_error_mapper import map_pydantic_validation_error

logger = logging.getLogger(__name__)


def to_jsonable(data: Any) -> Any:
    """Dump pydantic models (or lists of them) in JSON mode."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, list):
        return [to_jsonable(item) for item in data]
    if isinstance(data, dict):
        return {key: to_jsonable(value) for key, value in data.items()}
    return data


def success_result(data: Optional[Any] = None) -> Dict[str, Any]:
    """Build a success envelope, omitting ``data`` when there is none."""
    result: Dict[str, Any] = {"success": True}
    if data is not None:
        result["data"] = to_jsonable(data)
    return result


def handle_tool_errors(action: str) -> Callable:
    """
    Decorate a tool so that every failure becomes a failure envelope.

    - pydantic request errors are mapped to VALIDATION_ERROR
    - ToolError subclasses are returned as-is via ``to_dict()``
    - anything else is logged with its traceback and reported as a generic
      INTERNAL_ERROR naming only the attempted action

    Args:
        action: Human-readable action used in logs and internal errors
    """

    def decorator(func: Callable[..., Dict[str, Any]]) -> Callable[..., Dict[str, Any]]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Dict[str, Any]:
            try:
                return func(*args, **kwargs)
            except PydanticValidationError as e:
                error = map_pydantic_validation_error(e)
                logger.info("%s rejected: %s", action, error.message)
                return error.to_dict()
            except ToolError as e:
                logger.info("%s failed [%s]: %s", action, e.code.value, e.message)
                return e.to_dict()
            except Exception as e:
                logger.exception("Unexpected error during %s", action)
                return create_internal_error(action, original_error=e).to_dict()

        return wrapper

    return decorator

import logging
from typing import Any, Optional

from pizza_order import validation
from pizza_order.config import PizzaOrderConfig
from pizza_order.result import Failure, FieldError, Result, Success
from pizza_order.serialization import pizza_from_dict, pizza_to_dict, try_decode
from pizza_order.state import ServerState
from pizza_order.summary import summarize_pizza
from pizza_order.validation import ValidPizza

logger = logging.getLogger(__name__)


def _errors(errors: list[FieldError]) -> list[dict[str, str]]:
    return [{"path": e.path, "message": e.message} for e in errors]


def resolve_pizza(
    state: ServerState, pizza: Optional[dict] = None, name: str = ""
) -> Result[ValidPizza, list[FieldError]]:
    """Validated pizza from a compact-grammar document or a saved pizza's name."""
    if pizza is not None:
        decoded = try_decode(pizza_from_dict, pizza)
    elif name in state.pizzas:
        decoded = Success(state.pizzas[name])
    elif name:
        return Failure([FieldError("name", f"No saved pizza named '{name}'.")])
    else:
        return Failure([FieldError("pizza", "Pass a pizza document or the name of a saved pizza.")])

    match decoded:
        case Success(value=unvalidated):
            return validation.validate_pizza(unvalidated)
        case Failure():
            return decoded
        case _:
            raise AssertionError(f"Invalid Result! {decoded}")


async def validate_pizza(
    state: ServerState,
    config: PizzaOrderConfig,
    pizza: dict,
) -> dict[str, Any]:
    """Check a pizza document against the menu rules without saving it."""
    match resolve_pizza(state, pizza):
        case Success(value=valid):
            return {"success": True, "valid": True, "summary": summarize_pizza(valid)}
        case Failure(error=errors):
            return {"success": True, "valid": False, "errors": _errors(errors)}
        case result:
            raise AssertionError(f"Invalid Result! {result}")


async def save_pizza(
    state: ServerState,
    config: PizzaOrderConfig,
    name: str,
    pizza: dict,
) -> dict[str, Any]:
    """Validate a pizza and save it under ``name``, replacing any pizza with that name."""
    try:
        if not name.strip():
            return {"success": False, "error": "Pizza name is required.", "code": "NO_NAME"}

        match resolve_pizza(state, pizza):
            case Success(value=valid):
                pass
            case Failure(error=errors):
                return {
                    "success": False,
                    "error": "Pizza is not valid.",
                    "errors": _errors(errors),
                    "code": "INVALID_PIZZA",
                }
            case result:
                raise AssertionError(f"Invalid Result! {result}")

        replaced = name in state.pizzas
        state.pizzas[name] = pizza_from_dict(pizza)
        state.save()
        logger.info("Saved pizza %r", name)
        return {
            "success": True,
            "name": name,
            "replaced": replaced,
            "summary": summarize_pizza(valid),
        }

    except Exception as e:
        logger.exception("Error saving pizza")
        return {"success": False, "error": str(e), "code": "SAVE_FAILED"}


async def list_pizzas(
    state: ServerState,
    config: PizzaOrderConfig,
) -> dict[str, Any]:
    """List saved pizzas with their documents and summaries."""
    pizzas = [
        {"name": name, "pizza": pizza_to_dict(p), "summary": summarize_pizza(p)}
        for name, p in sorted(state.pizzas.items())
    ]
    return {"success": True, "pizzas": pizzas, "count": len(pizzas)}


async def delete_pizza(
    state: ServerState,
    config: PizzaOrderConfig,
    name: str,
) -> dict[str, Any]:
    """Remove a saved pizza by name."""
    try:
        if name not in state.pizzas:
            return {
                "success": False,
                "error": f"No saved pizza named '{name}'.",
                "code": "UNKNOWN_PIZZA",
            }
        del state.pizzas[name]
        state.save()
        return {"success": True, "deleted": name, "count": len(state.pizzas)}

    except Exception as e:
        logger.exception("Error deleting pizza")
        return {"success": False, "error": str(e), "code": "DELETE_FAILED"}

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from mcp.types import CallToolResult

from sbwsz_mcp.api import SbwszClient, text_result
from sbwsz_mcp.tools import TOOL_NAMES

logger = logging.getLogger(__name__)

ToolFn = Callable[[SbwszClient, Mapping[str, Any]], Awaitable[CallToolResult]]


def _required(arguments: Mapping[str, Any], key: str) -> Any:
    if arguments.get(key) is None:
        raise ValueError(f"Missing required argument: {key}")
    return arguments[key]


async def _get_card(client: SbwszClient, arguments: Mapping[str, Any]) -> CallToolResult:
    return await client.get_card(_required(arguments, "set"), _required(arguments, "collector_number"))


async def _search_cards(client: SbwszClient, arguments: Mapping[str, Any]) -> CallToolResult:
    return await client.search_cards(
        _required(arguments, "q"),
        page=arguments.get("page"),
        page_size=arguments.get("page_size"),
        order=arguments.get("order"),
        unique=arguments.get("unique"),
        priority_chinese=arguments.get("priority_chinese"),
    )


async def _get_sets(client: SbwszClient, arguments: Mapping[str, Any]) -> CallToolResult:
    return await client.get_sets()


async def _get_set(client: SbwszClient, arguments: Mapping[str, Any]) -> CallToolResult:
    return await client.get_set(_required(arguments, "set_code"))


async def _get_set_cards(client: SbwszClient, arguments: Mapping[str, Any]) -> CallToolResult:
    return await client.get_set_cards(
        _required(arguments, "set_code"),
        page=arguments.get("page"),
        page_size=arguments.get("page_size"),
        order=arguments.get("order"),
        priority_chinese=arguments.get("priority_chinese"),
    )


async def _hzls(client: SbwszClient, arguments: Mapping[str, Any]) -> CallToolResult:
    return await client.composite_image(_required(arguments, "target_sentence"))


HANDLERS: dict[str, ToolFn] = {
    "get_card_by_set_and_number": _get_card,
    "search_cards": _search_cards,
    "get_sets": _get_sets,
    "get_set": _get_set,
    "get_set_cards": _get_set_cards,
    "hzls": _hzls,
}


async def dispatch(
    client: SbwszClient, name: str, arguments: Mapping[str, Any] | None
) -> CallToolResult:
    """Run one tool call. Faults come back as ``isError`` results, never as exceptions."""
    if name not in TOOL_NAMES:
        logger.warning("Unknown tool requested: %s", name)
        return text_result(f"Unknown tool: {name}", is_error=True)

    try:
        return await HANDLERS[name](client, arguments or {})
    except Exception as e:
        logger.warning("Tool %s failed: %s", name, e)
        return text_result(f"Error: {e}", is_error=True)

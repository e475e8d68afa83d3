"""
Agent-side tool server (MCP over stdio).

Exposes approval_prompt and ask_user_question to the agent process. Each call
creates a mediation request on the broker and blocks in a MediationWaiter
until the human decides. Every unresolved outcome fails closed: permissions
are denied, questions return an error.

Run with: python -m mediator.bridge.tools
The process supervisor provides MEDIATOR_SERVER_URL and MEDIATOR_STREAMING_ID.
"""

import json
from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from mediator.bridge.client import BrokerClient
from mediator.bridge.schemas import QuestionItem, RequestKind
from mediator.bridge.waiter import MediationClient, MediationWaiter, permission_outcome, question_outcome
from mediator.core.config import ToolServerSettings
from mediator.core.errors import MediatorError, ValidationError
from mediator.core.logger import logger

SERVER_NAME = "mediator-permissions"

mcp = FastMCP(SERVER_NAME)


async def request_permission(
    client: MediationClient,
    correlation_id: str,
    tool_name: str,
    tool_input: dict[str, Any],
    **waiter_kwargs: Any,
) -> dict[str, Any]:
    """
    Ask the human whether the agent may run a tool.

    Returns:
        {"behavior": "allow", "updatedInput": ...} or {"behavior": "deny", "message": ...}

    Raises:
        ToolError: The broker rejected the request as malformed
    """
    logger.debug(f"Permission request received: {tool_name} (run={correlation_id})")
    waiter = MediationWaiter(client, correlation_id, **waiter_kwargs)
    try:
        result = await waiter.wait(
            RequestKind.PERMISSION, {"toolName": tool_name, "toolInput": tool_input}
        )
    except ValidationError as e:
        raise ToolError(f"Invalid permission request: {e.message}") from e
    except MediatorError as e:
        logger.error(f"Error processing permission request for {tool_name}: {e.message}")
        return {"behavior": "deny", "message": f"Permission denied due to error: {e.message}"}
    except Exception as e:
        logger.error(
            f"Unexpected error processing permission request for {tool_name}: {e}", exc_info=True
        )
        return {"behavior": "deny", "message": f"Permission denied due to error: {e}"}
    return permission_outcome(result, tool_input)


async def ask_questions(
    client: MediationClient,
    correlation_id: str,
    questions: list[dict[str, Any]],
    **waiter_kwargs: Any,
) -> dict[str, Any]:
    """
    Ask the human one or more multiple-choice questions.

    Returns:
        {"answers": {header: answer}} or {"error": ...}

    Raises:
        ToolError: The broker rejected the questions as malformed
    """
    logger.debug(f"Question request received: {len(questions)} question(s) (run={correlation_id})")
    waiter = MediationWaiter(client, correlation_id, **waiter_kwargs)
    try:
        result = await waiter.wait(RequestKind.QUESTION, {"questions": questions})
    except ValidationError as e:
        raise ToolError(f"Invalid question request: {e.message}") from e
    except MediatorError as e:
        logger.error(f"Error processing question request: {e.message}")
        return {"error": f"Question failed: {e.message}"}
    except Exception as e:
        logger.error(f"Unexpected error processing question request: {e}", exc_info=True)
        return {"error": f"Question failed: {e}"}
    return question_outcome(result)


@mcp.tool()
async def approval_prompt(tool_name: str, input: dict[str, Any]) -> str:
    """Request approval for tool usage from the user."""
    tool_settings = ToolServerSettings()
    async with BrokerClient(tool_settings.server_url) as client:
        outcome = await request_permission(client, tool_settings.streaming_id, tool_name, input)
    return json.dumps(outcome)


@mcp.tool()
async def ask_user_question(questions: list[QuestionItem]) -> str:
    """Ask the user a question with multiple choice options."""
    tool_settings = ToolServerSettings()
    async with BrokerClient(tool_settings.server_url) as client:
        outcome = await ask_questions(
            client,
            tool_settings.streaming_id,
            [question.to_wire() for question in questions],
        )
    return json.dumps(outcome)


def main() -> None:
    tool_settings = ToolServerSettings()
    logger.info(f"Tool server started (broker={tool_settings.server_url})")
    mcp.run()


if __name__ == "__main__":
    main()

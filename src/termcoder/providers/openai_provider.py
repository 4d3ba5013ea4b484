from __future__ import annotations

import openai
from loguru import logger

from termcoder.errors import ConfigurationError, ModelGatewayError, NoChoicesError
from termcoder.memory.models import Author, Message, TextPart, ToolRequestPart, ToolResultPart
from termcoder.provider import ModelReply, ToolCallRequest


def _to_openai_message(message: Message) -> dict:
    role = message.author.value
    oai_msg: dict = {"role": role}
    text_parts: list[str] = []

    if message.author is Author.TOOL:
        # One ToolResult per Tool message.
        for part in message.parts:
            if isinstance(part, ToolResultPart):
                oai_msg["tool_call_id"] = part.call_id
                oai_msg["name"] = part.tool_name
                text_parts.append(part.output)
                break
    elif message.author is Author.ASSISTANT:
        tool_calls: list[dict] = []
        for part in message.parts:
            if isinstance(part, TextPart):
                text_parts.append(part.text)
            elif isinstance(part, ToolRequestPart):
                tool_calls.append({
                    "id": part.call_id,
                    "type": "function",
                    "function": {
                        "name": part.tool_name,
                        "arguments": part.arguments_json,
                    },
                })
        if tool_calls:
            oai_msg["tool_calls"] = tool_calls
    else:
        text_parts.extend(p.text for p in message.parts if isinstance(p, TextPart))

    content = "".join(text_parts)
    if role == "assistant":
        # Assistant turns that only carry tool calls send null content.
        oai_msg["content"] = None if ("tool_calls" in oai_msg and not content) else content
    else:
        oai_msg["content"] = content
    return oai_msg


def _to_openai_messages(system_prompt: str, history: list[Message]) -> list[dict]:
    """Convert the stored conversation to OpenAI chat format.

    The API requires tool messages to directly follow the assistant turn that
    requested them. System notices stored while tool calls were still open are
    sent after the last matching tool message instead of in stored position.
    """
    out: list[dict] = []
    if system_prompt:
        out.append({"role": "system", "content": system_prompt})

    open_call_ids: set[str] = set()
    held: list[dict] = []
    for message in history:
        oai_msg = _to_openai_message(message)
        if message.author is Author.SYSTEM and open_call_ids:
            held.append(oai_msg)
            continue
        if message.author is Author.TOOL:
            open_call_ids.difference_update(r.call_id for r in message.tool_results())
            out.append(oai_msg)
        else:
            out.extend(held)
            held.clear()
            open_call_ids = {r.call_id for r in message.tool_requests()}
            out.append(oai_msg)
        if held and not open_call_ids:
            out.extend(held)
            held.clear()
    out.extend(held)
    return out


def _to_reply(response) -> ModelReply:
    if not response.choices:
        raise NoChoicesError("No response choices from LLM.")
    message = response.choices[0].message
    tool_calls = [
        ToolCallRequest(
            call_id=tc.id,
            tool_name=tc.function.name,
            arguments_json=tc.function.arguments or "",
        )
        for tc in (message.tool_calls or [])
    ]
    return ModelReply(text=message.content, tool_calls=tool_calls)


class OpenAIProvider:
    def __init__(
        self,
        api_key: str,
        tools: list[dict],
        *,
        system_prompt: str = "",
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        self._api_key = api_key
        self._tools = tools
        self._system_prompt = system_prompt
        self._client: openai.AsyncOpenAI | None = None
        if api_key:
            # Failures surface to the user instead of being retried here.
            self._client = openai.AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=0,
            )

    async def complete(self, history: list[Message], model: str) -> ModelReply:
        if self._client is None:
            raise ConfigurationError("OpenAI API key not configured.")

        oai_messages = _to_openai_messages(self._system_prompt, history)
        logger.debug(
            f"API request: model={model}, messages={len(oai_messages)}, tools={len(self._tools)}"
        )
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=oai_messages,
                tools=self._tools,
                tool_choice="auto",
            )
        except openai.APIStatusError as ex:
            logger.error(f"OpenAI API Error: {ex.status_code} - {ex.message}")
            raise ModelGatewayError(f"OpenAI API Error: {ex.status_code} - {ex.message}") from ex
        except openai.OpenAIError as ex:
            logger.error(f"OpenAI request failed: {ex}")
            raise ModelGatewayError(str(ex)) from ex

        reply = _to_reply(response)
        logger.debug(
            f"API response: text_len={len(reply.text or '')}, tool_calls={len(reply.tool_calls)}"
        )
        return reply

# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import json
import time
import logging
from google import genai
from google.genai import types
from models import api_config
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

API_KEY_LOGGING_MESSAGE = "Ran with user-specified API key"
QUERY_RESPONSE_MAX_OUTPUT_TOKENS = 4000
CHAT_TEMPERATURE = 0.7

# Chat roles as sent by the web client, mapped to Gemini content roles.
ROLE_MAP = {"user": "user", "assistant": "model", "model": "model"}


class GeminiInvalidResponseException(Exception):
    pass


class GeminiNotConfiguredException(GeminiInvalidResponseException):
    pass


def _client(api_key: str | None) -> genai.Client:
    if not api_key:
        api_key = api_config.DEFAULT_API_KEY
    else:
        logger.info(API_KEY_LOGGING_MESSAGE)
    if not api_key:
        raise GeminiNotConfiguredException("Gemini API key is not configured")
    return genai.Client(api_key=api_key)


def _truncate(text: str, limit: int = 200) -> str:
    return (text[:limit] + "...") if len(text) > limit else text


def call_chat(
    system_prompt: str,
    messages: List[Dict[str, str]],
    model: str | None = None,
    api_key: str | None = None,
) -> str:
    """
    Runs a multi-turn chat completion.

    Args:
        system_prompt (str): Instructions applied to the whole conversation.
        messages (List[Dict[str, str]]): {"role", "content"} turns, oldest first.
            "system" turns are skipped; "assistant" is sent as "model".
        model (str): The model to call with.
        api_key (str): Optional key overriding the configured default.

    Returns:
        str: The model's reply text.
    """
    client = _client(api_key)
    contents = [
        types.Content(
            role=ROLE_MAP[message["role"]],
            parts=[types.Part(text=message["content"])],
        )
        for message in messages
        if message.get("role") in ROLE_MAP and message.get("content")
    ]
    if not contents:
        raise GeminiInvalidResponseException("No chat turns to send")

    start_time = time.time()
    response = client.models.generate_content(
        model=model or api_config.DEFAULT_MODEL,
        contents=contents,
        config=types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=CHAT_TEMPERATURE,
            max_output_tokens=QUERY_RESPONSE_MAX_OUTPUT_TOKENS,
        ),
    )
    logger.info("Gemini chat call took %.2fs", time.time() - start_time)
    if not response.text:
        raise GeminiInvalidResponseException()
    return response.text


def call_predict_json(
    query: str,
    model: str | None = None,
    api_key: str | None = None,
) -> Any:
    """Calls Gemini in JSON mode and returns the decoded payload."""
    client = _client(api_key)
    start_time = time.time()
    logger.info("Calling Gemini in JSON mode, prompt: '%s'", _truncate(query))
    response = client.models.generate_content(
        model=model or api_config.DEFAULT_MODEL,
        contents=query,
        config={
            "response_mime_type": "application/json",
            "temperature": 0,
            "max_output_tokens": QUERY_RESPONSE_MAX_OUTPUT_TOKENS,
        },
    )
    logger.info("Gemini JSON call took: %.2fs", time.time() - start_time)
    if not response.text:
        raise GeminiInvalidResponseException()
    try:
        return json.loads(response.text)
    except json.JSONDecodeError as e:
        raise GeminiInvalidResponseException(
            f"Gemini returned invalid JSON: {_truncate(response.text)}"
        ) from e

"""
LLM Client for chat model access.

This module provides one interface over the hosted chat models:
- Plain completions with a Groq -> Gemini fallback cascade
- Tool-enabled completions over Groq's OpenAI-compatible API

Callers only ever see plain dicts ({role, content, tool_calls}), so the
agents can be tested with a scripted fake.
"""
import time
from typing import Any, Dict, List, Optional

import google.generativeai as genai
from groq import Groq

from busy_assistant.core.config import get_settings
from busy_assistant.core.exceptions import LLMError
from busy_assistant.core.logging_config import get_logger

logger = get_logger(__name__)


class LLMClient:
    """
    Hybrid client for the Groq and Google Gemini APIs.

    Features:
    - Multi-provider support (Groq, Google)
    - Automatic fallback on failure for plain chat
    - Tool calling on Groq models
    """

    def __init__(self):
        """Initialize clients for both providers."""
        self.settings = get_settings()

        self.groq_client = Groq(api_key=self.settings.groq_api_key)
        genai.configure(api_key=self.settings.google_api_key)

        self.smart_model = self.settings.llm_model_smart
        self.fast_model = self.settings.llm_model_fast
        self.temperature = self.settings.llm_temperature
        self.max_tokens = self.settings.llm_max_tokens

        logger.info("Hybrid LLM Client initialized (Groq + Google)")

    def generate(
        self,
        user_message: str,
        system_prompt: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
        model: Optional[str] = None,
        stop: Optional[List[str]] = None
    ) -> str:
        """
        Generate a plain completion, falling back across providers.

        Args:
            user_message: The latest user message
            system_prompt: System instruction (defaults to a generic one)
            history: Earlier {role, content} messages
            model: Optional model to try first
            stop: Optional stop sequences

        Returns:
            The assistant's reply text

        Raises:
            LLMError: If every provider in the cascade failed
        """
        if system_prompt is None:
            system_prompt = self._get_default_system_prompt()

        # Priority: Groq smart -> Gemini -> Groq fast -> Gemini (volume)
        model_cascade = [
            {"provider": "groq", "model": self.smart_model},
            {"provider": "google", "model": "gemini-2.0-flash"},
            {"provider": "groq", "model": self.fast_model},
            {"provider": "google", "model": "gemini-1.5-flash"},
        ]

        if model:
            is_google = "gemini" in model.lower()
            model_cascade.insert(0, {"provider": "google" if is_google else "groq", "model": model})

        last_error = None

        for i, attempt in enumerate(model_cascade):
            provider = attempt["provider"]
            target_model = attempt["model"]

            try:
                if i > 0:
                    logger.info(f"Attempt {i+1}: Falling back to {provider.title()} ({target_model})...")
                    time.sleep(1 * i)  # Linear backoff: 0s, 1s, 2s, 3s

                if provider == "google":
                    return self._generate_google(user_message, system_prompt, history, target_model, stop)
                return self._generate_groq(user_message, system_prompt, history, target_model, stop)

            except Exception as e:
                error_msg = str(e).lower()
                is_rate_limit = "429" in error_msg or "quota" in error_msg or "rate limit" in error_msg

                log_level = logger.warning if is_rate_limit else logger.error
                log_level(f"Provider failed ({provider}/{target_model}): {e}")

                last_error = e

        logger.critical("ALL LLM PROVIDERS FAILED.")
        raise LLMError(f"All chat model providers failed. Last error: {last_error}")

    def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Run one tool-enabled completion.

        Args:
            messages: Full conversation, including the system prompt and
                any assistant tool calls / tool results
            tools: OpenAI-style function schemas

        Returns:
            The assistant message as {"role", "content", "tool_calls"?}

        Raises:
            LLMError: If both Groq models failed
        """
        last_error = None

        for i, target_model in enumerate((self.smart_model, self.fast_model)):
            try:
                if i > 0:
                    logger.info(f"Falling back to Groq ({target_model}) for tool call...")
                kwargs: Dict[str, Any] = {
                    "model": target_model,
                    "messages": messages,
                    "temperature": self.temperature,
                    "max_tokens": self.max_tokens,
                }
                if tools:
                    kwargs["tools"] = tools
                    kwargs["tool_choice"] = "auto"

                response = self.groq_client.chat.completions.create(**kwargs)
                return self._message_to_dict(response.choices[0].message)

            except Exception as e:
                logger.warning(f"Tool completion failed (groq/{target_model}): {e}")
                last_error = e

        raise LLMError(f"Tool-enabled completion failed. Last error: {last_error}")

    def _generate_groq(self, user_message, system_prompt, history, model, stop=None):
        """Execute request using Groq."""
        messages = [{"role": "system", "content": system_prompt}]
        if history:
            messages.extend(history)
        messages.append({"role": "user", "content": user_message})

        response = self.groq_client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            stop=stop
        )
        return response.choices[0].message.content or ""

    def _generate_google(self, user_message, system_prompt, history, model, stop=None):
        """Execute request using Google Gemini."""
        model_instance = genai.GenerativeModel(
            model_name=model,
            system_instruction=system_prompt
        )

        # Convert history format (OpenAI -> Google); system turns are
        # already folded into system_instruction
        chat_history = []
        for msg in history or []:
            if msg["role"] == "system":
                continue
            role = "user" if msg["role"] == "user" else "model"
            chat_history.append({"role": role, "parts": [msg["content"]]})

        generation_config = genai.types.GenerationConfig(
            stop_sequences=stop,
            temperature=self.temperature,
        )

        chat = model_instance.start_chat(history=chat_history)
        response = chat.send_message(user_message, generation_config=generation_config)
        return response.text

    @staticmethod
    def _message_to_dict(message: Any) -> Dict[str, Any]:
        """Convert an SDK chat message into the plain dict the agents use."""
        result: Dict[str, Any] = {"role": "assistant", "content": message.content or ""}
        tool_calls = getattr(message, "tool_calls", None) or []
        if tool_calls:
            result["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {
                        "name": call.function.name,
                        "arguments": call.function.arguments or "{}",
                    },
                }
                for call in tool_calls
            ]
        return result

    def _get_default_system_prompt(self) -> str:
        """Get default system prompt."""
        return "You are a helpful assistant."

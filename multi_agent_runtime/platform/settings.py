"""Runtime settings and configuration.

Pydantic settings loaded from AGENTS_-prefixed environment variables, with
nested sections addressed by a double underscore
(e.g. AGENTS_RUNNER__MAX_TURNS=20). The engine itself only consumes the
frozen LlmConfig / RunnerConfig built from these settings.
"""

import logging

import pydantic_settings
from pydantic import BaseModel, Field, field_validator

from multi_agent_runtime.platform.agent.config import (
    DEFAULT_MAX_TURNS,
    LlmConfig,
    RunnerConfig,
)


class LlmSettings(BaseModel):
    api_base: str | None = None
    api_key: str | None = None
    temperature: float = Field(0.7)
    request_timeout: float = Field(120.0)
    retry_attempts: int = Field(3)
    retry_wait_seconds: float = Field(1.0)

    @field_validator("retry_attempts")
    @classmethod
    def _validate_retry_attempts(cls, v):
        if v < 1:
            raise ValueError(f"retry_attempts must be at least 1, got {v}")
        return v


class RunnerSettings(BaseModel):
    max_turns: int = Field(DEFAULT_MAX_TURNS)
    parallel_tool_calls: bool = Field(False)
    max_tool_workers: int = Field(4)

    @field_validator("max_turns", "max_tool_workers")
    @classmethod
    def _validate_positive(cls, v):
        if v < 1:
            raise ValueError(f"must be at least 1, got {v}")
        return v


class LoggingSettings(BaseModel):
    log_level: str = Field("INFO")
    log_json: bool = Field(True, description="True=JSON, False=colored console")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v):
        v_upper = v.upper()
        if v_upper not in logging._nameToLevel:
            raise ValueError(f'invalid value "{v}"')
        return v_upper


class Settings(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(
        env_prefix="AGENTS_",
        env_nested_delimiter="__",
    )

    llm: LlmSettings = LlmSettings()
    runner: RunnerSettings = RunnerSettings()
    logging: LoggingSettings = LoggingSettings()

    def llm_config(self) -> LlmConfig:
        return LlmConfig(
            api_key=self.llm.api_key,
            base_url=self.llm.api_base,
            temperature=self.llm.temperature,
            request_timeout=self.llm.request_timeout,
            retry_attempts=self.llm.retry_attempts,
            retry_wait_seconds=self.llm.retry_wait_seconds,
        )

    def runner_config(self) -> RunnerConfig:
        return RunnerConfig(
            max_turns=self.runner.max_turns,
            parallel_tool_calls=self.runner.parallel_tool_calls,
            max_tool_workers=self.runner.max_tool_workers,
        )

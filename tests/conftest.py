"""Shared pytest fixtures for SuperModel SDK tests."""

import pytest

from supermodel_sdk.config.constants import GENERAL_SKILL_ID
from supermodel_sdk.models.conversation_types import Message, TurnRole, assistant_message, user_message
from supermodel_sdk.models.credentials import CustomProvider, ProviderCredentials
from supermodel_sdk.models.skill import Skill, SkillType
from supermodel_sdk.scripting.sandbox import ScriptSandbox
from supermodel_sdk.skills.catalog import SkillCatalog


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with stubbed transports")
    config.addinivalue_line("markers", "integration: end-to-end pipeline tests")
    config.addinivalue_line("markers", "slow: tests that spawn processes")


def pytest_collection_modifyitems(config, items):
    # Tests are marked by the directory they live in.
    for item in items:
        parts = item.path.parts
        if "unit" in parts:
            item.add_marker(pytest.mark.unit)
        elif "integration" in parts:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real keys in the developer's environment out of the tests."""
    for name in (
        "GOOGLE_API_KEY", "GEMINI_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY",
        "SUPERMODEL_LOCAL_URL", "SUPERMODEL_LOCAL_API_KEY", "SUPERMODEL_CUSTOM_PROVIDERS_JSON",
        "SUPERMODEL_STREAM_IDLE_TIMEOUT", "SUPERMODEL_SCRIPT_TIMEOUT", "SUPERMODEL_ROUTER_MODEL",
        "ANTHROPIC_BASE_URL", "OPENAI_BASE_URL", "GOOGLE_GEMINI_BASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def credentials():
    """Credentials with every provider configured."""
    return ProviderCredentials(
        google_api_key="test-google-key",
        openai_api_key="test-openai-key",
        anthropic_api_key="test-anthropic-key",
        local_base_url="http://localhost:11434",
        custom_providers=[
            CustomProvider(id="groq", name="groq", base_url="https://api.groq.test/openai/v1",
                           api_key="gsk-test"),
        ],
    )


@pytest.fixture
def empty_credentials():
    return ProviderCredentials()


@pytest.fixture
def general_skill():
    return Skill(
        id=GENERAL_SKILL_ID,
        name="General Conversation",
        provider="google",
        base_model="gemini-2.5-flash",
        system_instructions="You are a helpful assistant.",
        description="General purpose conversation",
        category="General",
        is_installed=True,
    )


@pytest.fixture
def python_skill():
    return Skill(
        id="python-expert",
        name="Python Expert",
        provider="anthropic",
        base_model="claude-3-5-sonnet-latest",
        system_instructions="You are a senior Python engineer.",
        prompt_template="Answer with short code examples.",
        description="Python programming, recursion, algorithms and debugging",
        category="Programming",
        cost_per_1k_tokens=2.0,
        is_installed=True,
    )


@pytest.fixture
def shouty_skill():
    """Code-enhanced skill that upper-cases both directions."""
    return Skill(
        id="shouty",
        name="Shouty",
        provider="openai",
        base_model="gpt-4o-mini",
        skill_type=SkillType.CODE_ENHANCED,
        preprocessing_code="return prompt.upper()",
        postprocessing_code="return response + '!'",
    )


@pytest.fixture
def catalog(general_skill, python_skill):
    return SkillCatalog([general_skill, python_skill])


@pytest.fixture
def inline_sandbox():
    return ScriptSandbox(isolation="inline")


@pytest.fixture
def sample_history():
    """Earlier turns plus the new user message as the last element."""
    return [
        Message(role=TurnRole.SYSTEM, content="session started"),
        user_message("What is a list comprehension?"),
        assistant_message("A compact way to build lists."),
        user_message("explain recursion"),
    ]

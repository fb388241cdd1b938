import dataclasses

import pytest

from react_loop.config import DEFAULT_MAX_ITERATIONS, AgentConfig
from react_loop.tools import ToolDescriptor

SEARCH = ToolDescriptor(name="search", description="Search the web")


class TestAgentConfig:
    def test_defaults(self):
        config = AgentConfig()
        assert config.max_iterations == DEFAULT_MAX_ITERATIONS == 10
        assert config.tools == ()
        assert config.enable_streaming is True
        assert config.verbose is True

    def test_is_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            AgentConfig().max_iterations = 3

    @pytest.mark.parametrize("value", [0, -1, 2.5, "3"])
    def test_rejects_bad_max_iterations(self, value):
        with pytest.raises(ValueError, match="max_iterations"):
            AgentConfig(max_iterations=value)

    def test_tools_list_becomes_tuple(self):
        config = AgentConfig(tools=[SEARCH])
        assert config.tools == (SEARCH,)


class TestMerge:
    def test_merge_keeps_unspecified_fields(self):
        base = AgentConfig(max_iterations=4, tools=(SEARCH,))
        merged = base.merge(verbose=False)
        assert merged.max_iterations == 4
        assert merged.tools == (SEARCH,)
        assert merged.verbose is False
        assert base.verbose is True

    def test_merge_validates(self):
        with pytest.raises(ValueError):
            AgentConfig().merge(max_iterations=0)

    def test_merge_rejects_unknown_keys(self):
        with pytest.raises(TypeError, match="Unknown config options"):
            AgentConfig().merge(temperature=0.2)

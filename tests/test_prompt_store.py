from __future__ import annotations

import pytest

from cinescout.services.prompt_store import render_prompt


def test_render_prompt_substitutes_template_values():
    prompt = render_prompt(
        "research.movie_with_preference",
        position=2,
        title="Primer",
        preference="the refusal to explain itself",
    )
    assert prompt == '2. "Primer"\n   What I love about it: the refusal to explain itself'


def test_render_prompt_joins_multiline_entries():
    prompt = render_prompt("research.system_prompt", min_picks=8, max_picks=12)
    assert "8-12 recommendations" in prompt
    assert "\n" in prompt


def test_render_prompt_raises_for_unknown_key():
    with pytest.raises(KeyError):
        render_prompt("missing.prompt.key")


def test_render_prompt_raises_for_missing_value():
    with pytest.raises(KeyError, match="movies_context"):
        render_prompt("research.task_prompt", min_picks=8, max_picks=12)

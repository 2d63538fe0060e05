from __future__ import annotations

import re

import allure

from simple_mcp.jobs.ids import ADJECTIVES, NOUNS, generate_task_id

pytestmark = [
    allure.epic("Async Jobs"),
    allure.feature("Task Identifiers"),
]

_TITLE_WORD = re.compile(r"^[A-Z][a-z]+$")


def test_task_id_shape() -> None:
    task_id = generate_task_id("upgrade")

    assert task_id.startswith("task-upgrade-")
    parts = task_id.split("-")
    assert len(parts) == 5
    for word in parts[2:]:
        assert _TITLE_WORD.match(word), word


def test_tool_name_is_normalized_into_one_segment() -> None:
    task_id = generate_task_id("System Upgrade-Now!")

    parts = task_id.split("-")
    assert parts[1] == "systemupgradenow"
    assert len(parts) == 5


def test_unusable_tool_name_falls_back() -> None:
    assert generate_task_id("***").startswith("task-job-")


def test_word_lists_have_no_duplicates() -> None:
    assert len({word.lower() for word in ADJECTIVES}) == len(ADJECTIVES)
    assert len({word.lower() for word in NOUNS}) == len(NOUNS)


def test_enough_combinations() -> None:
    assert len(ADJECTIVES) * len(ADJECTIVES) * len(NOUNS) >= 1_000_000

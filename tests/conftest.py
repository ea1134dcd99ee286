"""Shared fixtures: write controller modules into a temporary tree."""

import textwrap

import pytest


@pytest.fixture
def write_module(tmp_path):
    def write(relative: str, source: str = ""):
        target = tmp_path / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(textwrap.dedent(source))
        return target

    return write

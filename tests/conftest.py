from __future__ import annotations

import pytest
from support import make_tiny_layout

from qtsviz.core.schema import Layout, Selection


@pytest.fixture
def tiny_layout() -> Layout:
    return make_tiny_layout()


@pytest.fixture
def selection() -> Selection:
    return Selection(scenario="incast", protocol="dctcp", load="50")

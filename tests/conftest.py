# SPDX-License-Identifier: LGPL-3.0-or-later
import logging
import sys
from pathlib import Path

import pytest

_THIS_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _THIS_DIR.parent

for _p in (_REPO_ROOT, _THIS_DIR):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))


@pytest.fixture
def logger():
    lg = logging.getLogger("az2nvme-tests")
    lg.setLevel(logging.DEBUG)
    return lg

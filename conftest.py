"""
pytest 루트 conftest
- pip install -e . 없이도 geminikit 패키지를 import할 수 있도록 sys.path 설정
"""

import sys
from pathlib import Path

_src = Path(__file__).parent / "src"

if str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

import os
import sys
import tempfile
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# Keep test runs out of /var/log.
os.environ.setdefault("WEIGHBRIDGE_LOG_DIR", str(Path(tempfile.gettempdir()) / "weighbridge-test-logs"))

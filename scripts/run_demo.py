import sys, pathlib
ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))
from rotator.bootstrap.main import run_app
if __name__ == "__main__":
    sys.exit(run_app(["--config", str(ROOT / "configs" / "example.yaml"), "run-all", "--dry-run"]))

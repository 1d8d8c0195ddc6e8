#!/usr/bin/env python
"""
Start the Template Pricing API under uvicorn.

Usage:
    python scripts/run_api.py [port]
"""
import os
import subprocess
import sys
from pathlib import Path

src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from template_pricing.config.settings import get_settings


def main():
    settings = get_settings()
    port = sys.argv[1] if len(sys.argv) > 1 else "8000"

    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(src_path), env.get("PYTHONPATH")]))

    if not settings.templates_dir.exists():
        print(f"No templates directory at {settings.templates_dir}; only inline templates will price.")

    print(f"Starting Template Pricing API on port {port}...")
    try:
        subprocess.run([
            sys.executable, "-m", "uvicorn",
            "template_pricing.api.main:app",
            "--host", "0.0.0.0",
            "--port", port,
            "--log-level", settings.log_level.lower(),
            "--reload",
        ], cwd=settings.project_root, env=env)
    except KeyboardInterrupt:
        print("\nAPI stopped.")


if __name__ == "__main__":
    main()

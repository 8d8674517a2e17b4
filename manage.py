#!/usr/bin/env python3
"""
Insurance CRM — Management Tool

Single entry point for running the API, the Celery worker/beat and the
database chores.  Every command runs from backend/ so that the
`insurance_crm` package, `celeryconfig` and `scripts` resolve.
Usage: python manage.py <command> [options]
"""

import logging
import os
import subprocess
import sys
from datetime import datetime
from typing import List, Optional


# ═══════════════════════════════════════════════════════════
#  Logging Setup
# ═══════════════════════════════════════════════════════════

class ColorFormatter(logging.Formatter):
    """Console formatter with ANSI colors and level symbols."""

    COLORS = {
        "INFO": "\033[96m",
        "SUCCESS": "\033[92m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[91m\033[1m",
        "DEBUG": "\033[94m",
        "HEADER": "\033[95m",
        "BOLD": "\033[1m",
        "RESET": "\033[0m",
    }

    SYMBOLS = {
        "INFO": "→",
        "SUCCESS": "✓",
        "WARNING": "⚠",
        "ERROR": "✗",
        "CRITICAL": "☠",
        "DEBUG": "•",
        "STEP": "▶",
    }

    MARKERS = ("SUCCESS", "WARNING", "ERROR", "STEP")

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.platform != "win32" and sys.stderr.isatty()

    def _colorize(self, text: str, color_name: str) -> str:
        if not self.use_colors:
            return text
        color = self.COLORS.get(color_name, "")
        return f"{color}{text}{self.COLORS['RESET']}" if color else text

    def format(self, record: logging.LogRecord) -> str:
        msg = str(record.msg)

        symbol, color = self.SYMBOLS.get(record.levelname, ""), record.levelname
        for marker in self.MARKERS:
            if f"[{marker}]" in msg:
                msg = msg.replace(f"[{marker}] ", "").replace(f"[{marker}]", "")
                symbol = self.SYMBOLS[marker]
                color = "INFO" if marker == "STEP" else marker
                break

        if msg.startswith("==="):
            record.msg = self._colorize(msg, "HEADER")
        elif msg.startswith(" "):
            record.msg = msg
        else:
            record.msg = self._colorize(f"{symbol} {msg}" if symbol else msg, color)
        return super().format(record)


_log_dir = "logs"
os.makedirs(_log_dir, exist_ok=True)
_log_file = os.path.join(_log_dir, f"manage-{datetime.now():%Y%m%d}.log")

_file_handler = logging.FileHandler(_log_file, encoding="utf-8")
_file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))

_console_handler = logging.StreamHandler()
_console_handler.setFormatter(ColorFormatter())

logging.basicConfig(level=logging.INFO, handlers=[_file_handler, _console_handler])
logger = logging.getLogger("manage")


# ═══════════════════════════════════════════════════════════
#  CRM Manager
# ═══════════════════════════════════════════════════════════

BACKEND_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "backend")


class CRMManager:
    """Wraps the uvicorn, celery, alembic and script invocations."""

    def __init__(self, host: str = "0.0.0.0", port: int = 8000):
        self.host = host
        self.port = port

    # ─── Helpers ──────────────────────────────────────────
    def _run(self, cmd: List[str], check: bool = True) -> int:
        """Run a command in backend/, streaming its output."""
        logger.info(f"[STEP] Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, cwd=BACKEND_DIR, check=check)
        except subprocess.CalledProcessError as exc:
            logger.error(f"Command failed (exit {exc.returncode})")
            raise
        except KeyboardInterrupt:
            logger.info("\n[SUCCESS] Stopped")
            return 0
        return result.returncode

    def _python(self, *args: str) -> List[str]:
        return [sys.executable, *args]

    # ─── Services ─────────────────────────────────────────
    def serve(self, reload: bool = False) -> None:
        """Start the FastAPI app under uvicorn."""
        logger.info("\n=== Starting API Server ===")
        cmd = self._python(
            "-m", "uvicorn", "insurance_crm.main:app",
            "--host", self.host, "--port", str(self.port),
        )
        if reload:
            cmd.append("--reload")
        logger.info(f"  Swagger docs: http://localhost:{self.port}/docs")
        self._run(cmd)

    def worker(self, queues: str = "automation,default") -> None:
        logger.info("\n=== Starting Celery Worker ===")
        self._run(self._python(
            "-m", "celery", "-A", "insurance_crm.tasks", "worker",
            "-Q", queues, "--loglevel=INFO",
        ))

    def beat(self) -> None:
        """Start the scheduler for the daily automation and expiry jobs."""
        logger.info("\n=== Starting Celery Beat ===")
        self._run(self._python("-m", "celery", "-A", "insurance_crm.tasks", "beat", "--loglevel=INFO"))

    # ─── Database ─────────────────────────────────────────
    def migrate(self, revision: str = "head") -> None:
        logger.info("\n=== Database Migrations ===")
        self._run(self._python("-m", "alembic", "upgrade", revision))
        logger.info("[SUCCESS] Database migrations applied!")

    def seed(self) -> None:
        logger.info("\n=== Seeding Database ===")
        self._run(self._python("-m", "scripts.seed_data"))
        logger.info("[SUCCESS] Seed data inserted!")

    def setup_whatsapp(self) -> None:
        logger.info("\n=== WhatsApp Templates ===")
        self._run(self._python("-m", "scripts.setup_whatsapp_templates"))
        logger.info("[SUCCESS] WhatsApp templates registered!")

    def apply_indexes(self) -> None:
        logger.info("\n=== Performance Indexes ===")
        self._run(self._python("-m", "scripts.apply_performance_indexes"))
        logger.info("[SUCCESS] Performance indexes applied!")

    # ─── Automation (one-off, in-process) ─────────────────
    def run_task(self, task: str) -> None:
        """Run one automation task synchronously, without a broker."""
        logger.info(f"\n=== Running {task} ===")
        code = (
            "from insurance_crm.core.logging import setup_logging; setup_logging(); "
            f"from insurance_crm.tasks.automation_tasks import {task}; "
            f"print({task}.apply().get())"
        )
        self._run(self._python("-c", code))
        logger.info(f"[SUCCESS] {task} finished")

    # ─── Tests ────────────────────────────────────────────
    def test(self, extra: Optional[List[str]] = None) -> int:
        logger.info("\n=== Test Suite ===")
        root = os.path.dirname(BACKEND_DIR)
        logger.info(f"[STEP] Running: pytest {' '.join(extra or [])}")
        return subprocess.run(self._python("-m", "pytest", *(extra or [])), cwd=root).returncode


# ═══════════════════════════════════════════════════════════
#  CLI
# ═══════════════════════════════════════════════════════════

_C = ColorFormatter.COLORS

USAGE = f"""
{_C['HEADER']}Insurance CRM — Management{_C['RESET']}
{'═' * 50}

{_C['BOLD']}Usage:{_C['RESET']} python manage.py <command> [options]

{_C['BOLD']}Commands:{_C['RESET']}
    {_C['INFO']}serve{_C['RESET']}            Start the API (--reload, --port=N)
    {_C['INFO']}worker{_C['RESET']}           Start a Celery worker (--queues=a,b)
    {_C['INFO']}beat{_C['RESET']}             Start Celery beat (daily schedule)
    {_C['INFO']}migrate{_C['RESET']}          Run Alembic migrations
    {_C['INFO']}seed{_C['RESET']}             Seed agent account and sample data
    {_C['INFO']}setup-whatsapp{_C['RESET']}   Register MSG91 WhatsApp templates
    {_C['INFO']}apply-indexes{_C['RESET']}    Apply extra performance indexes
    {_C['WARNING']}run-automation{_C['RESET']}   Send today's birthday wishes and renewal reminders now
    {_C['INFO']}update-expired{_C['RESET']}   Mark overdue Active policies as Expired
    {_C['INFO']}test{_C['RESET']}             Run the pytest suite (extra args passed through)

{_C['BOLD']}Examples:{_C['RESET']}
    python manage.py migrate && python manage.py seed
    python manage.py serve --reload
    python manage.py test -k leads
"""


def _option(opts: List[str], name: str, default: Optional[str] = None) -> Optional[str]:
    for o in opts:
        if o.startswith(f"--{name}="):
            return o.split("=", 1)[1]
    return default


def main() -> None:
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        print(USAGE)
        sys.exit(0)

    command = sys.argv[1]
    opts = sys.argv[2:]

    mgr = CRMManager(port=int(_option(opts, "port", "8000")))

    try:
        if command == "serve":
            mgr.serve(reload="--reload" in opts)
        elif command == "worker":
            mgr.worker(queues=_option(opts, "queues", "automation,default"))
        elif command == "beat":
            mgr.beat()
        elif command == "migrate":
            mgr.migrate(revision=_option(opts, "revision", "head"))
        elif command == "seed":
            mgr.seed()
        elif command == "setup-whatsapp":
            mgr.setup_whatsapp()
        elif command == "apply-indexes":
            mgr.apply_indexes()
        elif command == "run-automation":
            mgr.run_task("run_daily_automation")
        elif command == "update-expired":
            mgr.run_task("update_expired_policies")
        elif command == "test":
            sys.exit(mgr.test(opts))
        else:
            logger.error(f"Unknown command: {command}")
            print(USAGE)
            sys.exit(1)
    except subprocess.CalledProcessError as exc:
        logger.error(f"Operation failed: {exc}")
        sys.exit(exc.returncode or 1)


if __name__ == "__main__":
    main()

"""
macOS launchd integration: runs one alert cycle per tick.

Installs a single user agent, com.spot-alerts.check, which invokes
`main.py alerts check` every N minutes. launchd starts a fresh process per
tick and never starts a second one while the first is still running, so
cycles never overlap.

Plist goes to ~/Library/LaunchAgents/, logs to ~/Library/Logs/spot-alerts/.
"""

import os
import plistlib
import subprocess
from pathlib import Path

CHECK_LABEL = "com.spot-alerts.check"
PLIST_DIR = Path.home() / "Library" / "LaunchAgents"
LOG_DIR = Path.home() / "Library" / "Logs" / "spot-alerts"
LOG_NAME = "check.log"

PASSTHROUGH_ENV = [
    "SPOT_ALERTS_DB_PATH", "SPOT_ALERTS_LOG_LEVEL", "SPOT_ALERTS_TIMEZONE",
    "SPOT_ALERTS_PUSH_TRANSPORT",
]


class LaunchdManager:
    def __init__(self, project_dir: str, python_path: str = None, config_path: str = None):
        self.project_dir = Path(project_dir).resolve()
        self.python_path = python_path or str(self.project_dir / "venv" / "bin" / "python")
        self.main_py = str(self.project_dir / "main.py")
        self.config_path = config_path

    @property
    def plist_path(self) -> Path:
        return PLIST_DIR / f"{CHECK_LABEL}.plist"

    def generate_plist(self, interval_minutes: int = 15) -> dict:
        args = [self.python_path, self.main_py]
        if self.config_path:
            args += ["--config", str(self.config_path)]
        args += ["alerts", "check"]
        return {
            "Label": CHECK_LABEL,
            "ProgramArguments": args,
            "StartInterval": interval_minutes * 60,
            "RunAtLoad": True,
            "WorkingDirectory": str(self.project_dir),
            "EnvironmentVariables": self._get_env_vars(),
            "StandardOutPath": str(LOG_DIR / LOG_NAME),
            "StandardErrorPath": str(LOG_DIR / LOG_NAME),
            "Nice": 10,
            "ProcessType": "Background",
        }

    def _get_env_vars(self) -> dict:
        env = {
            "PATH": os.environ.get("PATH", "/usr/local/bin:/usr/bin:/bin"),
            "HOME": str(Path.home()),
            "PYTHONPATH": str(self.project_dir),
        }
        for key in PASSTHROUGH_ENV:
            val = os.environ.get(key)
            if val:
                env[key] = val
        return env

    def install(self, interval_minutes: int = 15) -> str:
        """Write the plist and load it. Returns 'installed' or 'error: ...'."""
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        PLIST_DIR.mkdir(parents=True, exist_ok=True)
        try:
            with open(self.plist_path, "wb") as f:
                plistlib.dump(self.generate_plist(interval_minutes), f)
            self._launchctl("load", str(self.plist_path))
            return "installed"
        except Exception as e:
            return f"error: {e}"

    def uninstall(self) -> str:
        if not self.plist_path.exists():
            return "not installed"
        try:
            self._launchctl("unload", str(self.plist_path))
            self.plist_path.unlink()
            return "removed"
        except Exception as e:
            return f"error: {e}"

    def status(self) -> dict:
        result = {"loaded": False, "running": False, "pid": None, "last_exit": None}
        try:
            output = subprocess.run(
                ["launchctl", "list", CHECK_LABEL],
                capture_output=True, text=True, timeout=5
            )
        except (OSError, subprocess.TimeoutExpired):
            return result

        if output.returncode == 0:
            info = {}
            for line in output.stdout.strip().split("\n"):
                if "=" in line:
                    key, val = line.split("=", 1)
                    info[key.strip().strip('"')] = val.strip().strip('";')
            pid = info.get("PID")
            last_exit = info.get("LastExitStatus")
            result.update({
                "loaded": True,
                "running": pid is not None and pid != "0",
                "pid": int(pid) if pid and pid != "0" else None,
                "last_exit": int(last_exit) if last_exit else None,
            })

        log_path = LOG_DIR / LOG_NAME
        if log_path.exists():
            lines = log_path.read_text().strip().split("\n")
            if lines:
                result["last_log_line"] = lines[-1][:100]
        return result

    def get_logs(self, lines: int = 50) -> str:
        log_path = LOG_DIR / LOG_NAME
        if not log_path.exists():
            return "No log file yet. Job may not have run."
        return "\n".join(log_path.read_text().strip().split("\n")[-lines:])

    def _launchctl(self, action: str, plist_path: str):
        result = subprocess.run(
            ["launchctl", action, plist_path],
            capture_output=True, text=True, timeout=10
        )
        if result.returncode != 0 and "already loaded" not in result.stderr.lower():
            raise RuntimeError(f"launchctl {action} failed: {result.stderr.strip()}")


def rotate_logs(max_size_mb: int = 10, keep_lines: int = 1000):
    """Truncate the check log to its last keep_lines lines once it exceeds max_size_mb."""
    log_path = LOG_DIR / LOG_NAME
    if not log_path.exists():
        return False
    if log_path.stat().st_size / (1024 * 1024) <= max_size_mb:
        return False
    lines = log_path.read_text().strip().split("\n")
    log_path.write_text("\n".join(lines[-keep_lines:]) + "\n")
    return True

import os
import threading
import config

LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}

_tick_id = None


def set_tick(tick_id):
    global _tick_id
    _tick_id = tick_id


def enabled(level):
    threshold = LEVELS.get(getattr(config, "LOG_LEVEL", "INFO"), 20)
    return LEVELS.get(level, 20) >= threshold


def log(scope, msg, level="INFO"):
    if scope == "TICK" and not getattr(config, "LOG_TICK_LOOP", False):
        return
    if not enabled(level):
        return
    pid = os.getpid()
    thread = threading.current_thread().name
    tick = _tick_id
    tick_tag = f" t{tick}" if tick is not None else ""
    text = f"[{level}{tick_tag} pid{pid} thr{thread} {scope}] {msg}"
    use_color = getattr(config, "LOG_COLOR", True) and os.getenv("NO_COLOR") is None
    if use_color:
        if level in ("WARN", "ERROR"):
            text = f"\x1b[31m{text}\x1b[0m"
        elif thread != "MainThread":
            # Step workers and connection threads.
            text = f"\x1b[32m{text}\x1b[0m"
    print(text)

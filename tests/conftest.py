"""Shared fixtures: a fake ``gemini`` executable driven by its arguments."""

import asyncio
import os
import stat
import sys
from pathlib import Path

import pytest

FAKE_GEMINI = '''\
import json
import os
import signal
import sys
import time

argv = sys.argv[1:]
mode = os.environ.get("FAKE_GEMINI_MODE", "")

if argv == ["--version"]:
    if mode == "broken":
        sys.stderr.write("not authenticated\\n")
        sys.exit(2)
    if mode == "hang":
        time.sleep(30)
    print("0.9.0-fake")
elif argv == ["models", "list"]:
    sys.stdout.write(os.environ.get("FAKE_GEMINI_MODELS", "model-a\\nmodel-b\\n"))
elif argv[:1] == ["sleep"]:
    time.sleep(float(argv[1]))
    print("woke up")
elif argv[:1] == ["ignore-term"]:
    signal.signal(signal.SIGTERM, signal.SIG_IGN)
    time.sleep(float(argv[1]))
elif argv[:1] == ["flood"]:
    sys.stdout.write("x" * int(argv[1]))
elif argv[:1] == ["flood-stubborn"]:
    signal.signal(signal.SIGTERM, signal.SIG_IGN)
    sys.stdout.write("x" * int(argv[1]))
    sys.stdout.flush()
    time.sleep(float(argv[2]))
elif argv[:1] == ["fail"]:
    sys.stdout.write("partial")
    sys.stderr.write("boom")
    sys.exit(int(argv[1]))
elif argv[:1] == ["quiet"]:
    pass
else:
    sys.stdout.write(json.dumps(argv))
'''


def write_fake_gemini(directory: Path, name: str = "gemini") -> str:
    """Write the fake CLI into ``directory`` and make it executable."""
    script = directory / name
    script.write_text(f"#!{sys.executable}\n{FAKE_GEMINI}", encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(script)


@pytest.fixture
def fake_gemini(tmp_path: Path) -> str:
    """Path to a runnable fake Gemini CLI."""
    return write_fake_gemini(tmp_path)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host configuration out of the tests."""
    for name in list(os.environ):
        if name.startswith("GEMINI_MCP_") or name in ("GEMINI_CLI_PATH", "FAKE_GEMINI_MODE"):
            monkeypatch.delenv(name, raising=False)


async def wait_for_registered(registry, count: int, timeout: float = 5.0) -> None:
    """Poll until ``registry`` tracks ``count`` processes."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while len(registry) != count:
        if loop.time() > deadline:
            raise AssertionError(f"registry has {len(registry)} entries, expected {count}")
        await asyncio.sleep(0.01)

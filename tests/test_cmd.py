import sys

import pytest

from vcsloc.errors import CommandError
from vcsloc.vcs.cmd import lookup_path, run_external, run_external_incremental

PY = sys.executable


def test_run_external_captures_output(tmp_path):
    result = run_external(PY, tmp_path, "-c", "import sys; print('out'); print('err', file=sys.stderr)")
    assert result.stdout == "out\n"
    assert result.stderr == "err\n"
    assert result.lines == ["out"]
    assert result.elapsed >= 0


def test_run_external_failure():
    with pytest.raises(CommandError) as excinfo:
        run_external(PY, None, "-c", "import sys; print('boom', file=sys.stderr); sys.exit(3)")
    assert excinfo.value.returncode == 3
    assert "boom" in str(excinfo.value)


def test_missing_executable():
    with pytest.raises(CommandError, match="Not installed"):
        lookup_path("definitely-not-a-real-vcs-binary")


def test_run_external_incremental_streams_both_pipes():
    out, err = [], []
    script = (
        "import sys\n"
        "for i in range(3):\n"
        "    print('line', i)\n"
        "    print('warn', i, file=sys.stderr)\n"
    )
    elapsed = run_external_incremental(out.append, err.append, PY, None, "-c", script)
    assert out == ["line 0", "line 1", "line 2"]
    assert err == ["warn 0", "warn 1", "warn 2"]
    assert elapsed >= 0


def test_run_external_incremental_failure_includes_stderr():
    with pytest.raises(CommandError) as excinfo:
        run_external_incremental(
            lambda line: None, None, PY, None, "-c", "import sys; sys.stderr.write('bad\\n'); sys.exit(1)"
        )
    assert excinfo.value.returncode == 1
    assert excinfo.value.stderr == "bad"

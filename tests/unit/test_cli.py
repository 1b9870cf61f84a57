import json
from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from thurstonian_sim.cli import app

runner = CliRunner()


def test_presets_lists_available_presets() -> None:
    result = runner.invoke(app, ["presets"])

    assert result.exit_code == 0
    assert "baseline" in result.stdout
    assert "ordinal" in result.stdout


def test_generate_writes_csv_and_metadata(tmp_path: Path) -> None:
    output = tmp_path / "out" / "ordinal.csv"

    result = runner.invoke(
        app, ["generate", "ordinal", "--output", str(output), "--seed", "3"]
    )

    assert result.exit_code == 0, result.stdout
    df = pd.read_csv(output)
    assert {"gamma1", "gamma3", "mu1", "mu4"} <= set(df.columns)
    assert set(df["response"].unique()) <= {0, 1, 2, 3}
    metadata = json.loads((tmp_path / "out" / "ordinal.meta.json").read_text())
    assert metadata["family"] == "cumulative"
    assert metadata["ncat"] == 4
    assert len(df) == metadata["npersons"] * metadata["nblocks"]


def test_generate_is_reproducible_with_seed(tmp_path: Path) -> None:
    first = tmp_path / "a.csv"
    second = tmp_path / "b.csv"

    for path in (first, second):
        result = runner.invoke(
            app, ["generate", "baseline", "-o", str(path), "--seed", "11"]
        )
        assert result.exit_code == 0

    assert first.read_text() == second.read_text()


def test_generate_unknown_preset_fails(tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["generate", "missing", "--output", str(tmp_path / "x.csv")]
    )

    assert result.exit_code == 1
    assert "Unknown preset" in result.stdout

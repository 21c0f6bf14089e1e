import io

import pytest

from fluent_sweep.case.journal import TemplateMissing
from fluent_sweep.pipeline import BatchConfig, run_sweep
from fluent_sweep.post.convergence import CaseStatus
from fluent_sweep.post.report import RunReporter
from fluent_sweep.utils.config import ConfigError


def test_partial_failure_does_not_abort(make_batch, fake_invoker, make_transcript, quiet_reporter):
    config = make_batch(reynolds=(50, 75, 100, 125, 150))
    invoker = fake_invoker(
        [
            (0, make_transcript(847, "0.0234")),
            (0, make_transcript(1000, "0.12")),
            (1, "Error: license checkout failed\n"),
            (0, "no iteration records here\n"),
            (0, make_transcript(512, "0.001")),
        ]
    )

    ledger = run_sweep(config, invoker=invoker, reporter=quiet_reporter)

    assert len(invoker.scripts) == 5
    assert [r.status for r in ledger.results] == [
        CaseStatus.CONVERGED,
        CaseStatus.NOT_CONVERGED,
        CaseStatus.FAILED,
        CaseStatus.PARSE_ERROR,
        CaseStatus.CONVERGED,
    ]
    failed = ledger.results[2]
    assert failed.actual_iterations is None and failed.final_residual is None
    assert ledger.results[3].actual_iterations == 0
    assert ledger.ended_at is not None

    rows = config.ledger_path.read_text(encoding="utf-8").splitlines()
    assert rows[0].startswith("Batch started: ")
    assert rows[-1].startswith("Batch ended: ")
    assert len(rows) == 2 + 5 + 1
    assert ",N/A,N/A,FAILED," in rows[4]


def test_missing_mesh_skips_whole_inner_sweep(make_batch, fake_invoker, make_transcript):
    config = make_batch(
        reynolds=(50, 100),
        meshes=("angle30.msh", "angle45.msh", "angle60.msh.h5"),
        missing=("angle45.msh",),
    )
    invoker = fake_invoker([(0, make_transcript(847, "0.0234"))] * 4)
    stream = io.StringIO()
    ledger = run_sweep(config, invoker=invoker, reporter=RunReporter(stream))

    assert [r.case.case_id for r in ledger.results] == [
        "angle30_Re50",
        "angle30_Re100",
        "angle60_Re50",
        "angle60_Re100",
    ]
    output = stream.getvalue()
    assert "angle45.msh" in output
    assert "[3/6] angle60 | Re = 50" in output
    assert not (config.results_dir / "angle45").exists()


def test_end_to_end_two_reynolds(make_batch, fake_invoker, make_transcript, quiet_reporter, tmp_path):
    config = make_batch(reynolds=(50, 100))
    invoker = fake_invoker([(0, make_transcript(847, "0.0234")), (0, make_transcript(1000, "0.12"))])

    ledger = run_sweep(config, invoker=invoker, reporter=quiet_reporter)

    assert config.run.kinematic_viscosity == pytest.approx(1.0048e-6, rel=1e-4)
    first, second = ledger.results
    assert (first.case.reynolds, second.case.reynolds) == (50, 100)
    assert first.case.velocity == pytest.approx(2.848e-3, rel=1e-3)
    assert first.case.max_iterations == 1000
    assert first.status is CaseStatus.CONVERGED
    assert second.status is CaseStatus.NOT_CONVERGED

    journal = (tmp_path / "run_vessel_Re50.jou").read_text(encoding="utf-8")
    assert "re 50\n" in journal
    assert "iterate 1000\n" in journal
    assert f"read {(tmp_path / 'vessel.msh.h5').as_posix()}\n" in journal
    assert (config.results_dir / "vessel" / "Re100" / "console.log").is_file()


def test_missing_template_aborts_before_any_case(make_batch, fake_invoker, tmp_path, quiet_reporter):
    config = make_batch(template=tmp_path / "absent.jou")
    invoker = fake_invoker([])
    with pytest.raises(TemplateMissing):
        run_sweep(config, invoker=invoker, reporter=quiet_reporter)
    assert invoker.scripts == []


def test_unusable_results_dir_aborts(make_batch, fake_invoker, tmp_path, quiet_reporter):
    blocker = tmp_path / "results"
    blocker.write_text("not a directory", encoding="utf-8")
    config = make_batch()
    with pytest.raises(OSError):
        run_sweep(config, invoker=fake_invoker([]), reporter=quiet_reporter)


def test_cleanup_journals(make_batch, fake_invoker, make_transcript, tmp_path, quiet_reporter):
    config = make_batch(reynolds=(50,), cleanup_journals=True)
    run_sweep(config, invoker=fake_invoker([(0, make_transcript(847, "0.0234"))]), reporter=quiet_reporter)
    assert not (tmp_path / "run_vessel_Re50.jou").exists()


def test_residual_plot_written(make_batch, fake_invoker, make_transcript, quiet_reporter):
    config = make_batch(reynolds=(50,), plot_residuals=True)
    run_sweep(config, invoker=fake_invoker([(0, make_transcript(847, "0.0234"))]), reporter=quiet_reporter)
    assert (config.results_dir / "vessel" / "Re50" / "residuals.png").is_file()


def test_batch_config_load(tmp_path):
    config_file = tmp_path / "sweep.yaml"
    config_file.write_text(
        """
project:
  work_dir: work
  template: templates/bifurcation.jou
fluid: {diameter: 0.017638075, density: 998.2, viscosity: 0.001003}
convergence: {threshold: 5.0e-2}
solver: {executable: /opt/ansys/bin/fluent}
meshes: [meshes/a.msh.h5, /abs/b.msh]
reynolds: [50, 62.5, 100]
""",
        encoding="utf-8",
    )
    config = BatchConfig.load(config_file)

    assert config.work_dir == tmp_path / "work"
    assert config.results_dir == tmp_path / "work" / "results"
    assert config.ledger_path == tmp_path / "work" / "results" / "batch_summary.log"
    assert config.template == tmp_path / "templates" / "bifurcation.jou"
    assert [mesh.name for mesh in config.meshes] == ["a", "b"]
    assert config.reynolds == (50.0, 62.5, 100.0)
    assert config.run.convergence_threshold == 0.05
    assert config.solver_executable == "/opt/ansys/bin/fluent"
    assert config.cleanup_journals is False
    assert config.total_cases == 6


@pytest.mark.parametrize("reynolds", ["[]", "[-50]", "[fast]", "[true]"])
def test_batch_config_rejects_bad_reynolds(tmp_path, reynolds):
    config_file = tmp_path / "sweep.yaml"
    config_file.write_text(
        "fluid: {diameter: 0.01, density: 998.2, viscosity: 0.001}\n"
        "convergence: {threshold: 0.05}\n"
        "meshes: [a.msh]\n"
        f"reynolds: {reynolds}\n",
        encoding="utf-8",
    )
    with pytest.raises(ConfigError):
        BatchConfig.load(config_file)


def test_plotting_error_keeps_case_status(make_batch, fake_invoker, make_transcript, quiet_reporter, monkeypatch, caplog):
    def broken_plot(*args, **kwargs):
        raise RuntimeError("backend unavailable")

    monkeypatch.setattr("fluent_sweep.pipeline.plot_residual_history", broken_plot)
    config = make_batch(reynolds=(50, 100), plot_residuals=True)
    invoker = fake_invoker([(0, make_transcript(847, "0.0234")), (0, make_transcript(1000, "0.12"))])

    ledger = run_sweep(config, invoker=invoker, reporter=quiet_reporter)

    assert [r.status for r in ledger.results] == [CaseStatus.CONVERGED, CaseStatus.NOT_CONVERGED]
    assert "backend unavailable" in caplog.text


def test_journal_cleanup_error_does_not_abort(make_batch, fake_invoker, make_transcript, quiet_reporter, monkeypatch):
    def locked(self, missing_ok=False):
        raise PermissionError(f"locked: {self}")

    monkeypatch.setattr("pathlib.Path.unlink", locked)
    config = make_batch(reynolds=(50, 100), cleanup_journals=True)
    invoker = fake_invoker([(0, make_transcript(847, "0.0234"))] * 2)

    ledger = run_sweep(config, invoker=invoker, reporter=quiet_reporter)

    assert [r.status for r in ledger.results] == [CaseStatus.CONVERGED, CaseStatus.CONVERGED]


@pytest.mark.parametrize(
    "extra",
    [
        "project: [work]\n",
        "solver: fluent\n",
        "post: true\n",
        "solver: {executable: 42}\n",
        "project: {template: [a, b]}\n",
    ],
)
def test_batch_config_rejects_malformed_sections(tmp_path, extra):
    config_file = tmp_path / "sweep.yaml"
    config_file.write_text(
        "fluid: {diameter: 0.01, density: 998.2, viscosity: 0.001}\n"
        "convergence: {threshold: 0.05}\n"
        "meshes: [a.msh]\n"
        "reynolds: [50]\n" + extra,
        encoding="utf-8",
    )
    with pytest.raises(ConfigError):
        BatchConfig.load(config_file)


@pytest.mark.parametrize("meshes", ["[42]", "[{path: a.msh}]", "[null]"])
def test_batch_config_rejects_non_string_meshes(tmp_path, meshes):
    config_file = tmp_path / "sweep.yaml"
    config_file.write_text(
        "fluid: {diameter: 0.01, density: 998.2, viscosity: 0.001}\n"
        "convergence: {threshold: 0.05}\n"
        f"meshes: {meshes}\n"
        "reynolds: [50]\n",
        encoding="utf-8",
    )
    with pytest.raises(ConfigError):
        BatchConfig.load(config_file)

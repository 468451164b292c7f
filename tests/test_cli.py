from click.testing import CliRunner

from boxsolver.evaluator import cli


def test_demo():
    runner = CliRunner()
    result = runner.invoke(cli, ['demo'])
    assert result.exit_code == 0, result.output
    assert "status: converged" in result.output


def test_list_optimizers():
    runner = CliRunner()
    result = runner.invoke(cli, ['list-optimizers'])
    assert result.exit_code == 0
    assert "minimize_lbfgsb" in result.output
    assert "minimize_scipy_lbfgsb" in result.output
    assert "Total: 2 optimizers" in result.output


def test_solve_writes_plots(tmp_path):
    plot_path = tmp_path / "path.png"
    trace_path = tmp_path / "trace.png"
    runner = CliRunner()
    result = runner.invoke(cli, ['solve', '--problem', 'sphere', '--n-dims', '2',
                                 '--plot-path', str(plot_path), '--trace-path', str(trace_path)])
    assert result.exit_code == 0, result.output
    assert "status: converged" in result.output
    assert plot_path.exists()
    assert trace_path.exists()


def test_solve_rejects_contour_plot_in_higher_dimensions(tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, ['solve', '--problem', 'sphere', '--n-dims', '3',
                                 '--plot-path', str(tmp_path / "path.png")])
    assert result.exit_code != 0
    assert "--n-dims 2" in result.output


def test_tune():
    runner = CliRunner()
    result = runner.invoke(cli, ['tune', '--n-trials', '2', '--n-dims', '2', '--n-samples', '1', '--seed', '0'])
    assert result.exit_code == 0, result.output
    assert "Best parameters found for minimize_lbfgsb" in result.output
    assert "m:" in result.output


def test_benchmark(tmp_path):
    save_path = tmp_path / "benchmark.png"
    runner = CliRunner()
    result = runner.invoke(cli, ['benchmark', '--n-tuning-trials', '0', '--n-test-functions', '1',
                                 '--seed', '0', '--save-path', str(save_path)])
    assert result.exit_code == 0, result.output
    assert "BENCHMARK SUMMARY" in result.output
    assert save_path.exists()

from inspect import signature
from typing import Annotated, Callable, get_origin, get_args
from boxsolver.utils import Interval, projected_gradient
from boxsolver.function_generators import fun_nonlinear as fun_generator
from boxsolver.function_generators.fun_nonlinear import BoundedProblem
from boxsolver.errors import BoxSolverError
from boxsolver.logging_utils import get_logger, set_package_level
import optuna
import time
import numpy as np
import click
import matplotlib.pyplot as plt
from boxsolver.optimizers import OPTIMIZERS  # Import the mapping
from boxsolver.optimizers.lbfgsb import LBFGSB

logger = get_logger(__name__)

LOG_PG_FLOOR = -12


def generate_test_problems(n_samples, n_dims, function_names=None, seed: int | None = None) -> list[BoundedProblem]:
    # Randomly transformed, box-constrained versions of each named function
    function_names = function_names or fun_generator.FUNCTIONS_AND_OPTIMA.keys()
    rng = np.random.default_rng(seed)
    problems = []
    for func_name in function_names:
        for _ in range(n_samples):
            problem_seed = int(rng.integers(0, 2**31 - 1))
            problems.append(fun_generator.get_bounded_problem(func_name, n_dims=n_dims, transform=True,
                                                              seed=problem_seed))
    return problems


def log_projected_gradient(problem: BoundedProblem, x: np.ndarray) -> float:
    """log10 of the projected gradient infinity norm at x, floored to avoid log-zero."""
    pg = np.linalg.norm(projected_gradient(x, problem.jac(x), problem.lower, problem.upper), ord=np.inf)
    if pg <= 10.0 ** LOG_PG_FLOOR:
        return LOG_PG_FLOOR
    return float(np.log10(pg))


def multivariate_model_runner(minimizer: Callable, problems: list[BoundedProblem], **kwargs) -> tuple[float, float]:
    """
    Return the mean log10 projected-gradient norm reached by the minimizer over
    the problems, and the total time taken.

    Kwargs are forwarded to the minimizer (Optuna trial.suggest_* values).
    """
    log_pg = []
    time_start = time.time()

    for problem in problems:
        x_hat = minimizer(fun=problem.fun, initial_guess=problem.initial_guess.copy(), jac=problem.jac,
                          lower=problem.lower, upper=problem.upper, **kwargs)
        log_pg.append(log_projected_gradient(problem, x_hat))

    time_elapsed = time.time() - time_start
    logger.info("Trial with params %s took %.2fs, mean log |pg|: %.3f", kwargs, time_elapsed, np.mean(log_pg))

    return float(np.mean(log_pg)), time_elapsed


def univariate_model_runner(**kwargs):
    log_pg, time_elapsed = multivariate_model_runner(**kwargs)
    total_loss = log_pg + time_elapsed
    return total_loss


def make_optuna_objective(minimizer_to_test: Callable, problems: list[BoundedProblem]) -> Callable:
    sig = signature(minimizer_to_test)

    # The term "trial" is magic used by Optuna
    def optuna_loss(trial):
        kwargs = {'minimizer': minimizer_to_test, 'problems': problems}
        for name, param in sig.parameters.items():
            if name in ['fun', 'initial_guess', 'jac', 'lower', 'upper']:
                continue
            anno = param.annotation
            if get_origin(anno) is Annotated:
                base_type, meta = get_args(anno)
                if isinstance(meta, Interval):
                    if base_type is int:
                        if meta.log:
                            step = None
                        else:
                            step = meta.step if meta.step is not None else 1
                        kwargs[name] = trial.suggest_int(name, meta.low, meta.high,
                                                         step=step, log=meta.log)
                    else:
                        if meta.log:
                            step = None
                        else:
                            step = meta.step if meta.step is not None else (meta.high - meta.low) / 100
                        kwargs[name] = trial.suggest_float(name, meta.low, meta.high,
                                                           step=step, log=meta.log)
                elif isinstance(meta, list) and base_type is str:
                    kwargs[name] = trial.suggest_categorical(name, meta)
                else:
                    raise ValueError(f"Unsupported metadata for {name}: {meta}")
            else:
                kwargs[name] = param.default

        return univariate_model_runner(**kwargs)

    return optuna_loss


def tune_minimizer(minimizer_to_test: Callable, problems: list[BoundedProblem], n_trials: int = 50,
                   seed: int | None = None):
    """
    Tune the minimizer using Optuna.

    :param minimizer_to_test: The minimizer function to tune.
    :param problems: Problems the loss is averaged over.
    :param n_trials: Number of trials for tuning.
    :return: The best parameters found by Optuna.
    """
    objective = make_optuna_objective(minimizer_to_test, problems=problems)
    sampler = optuna.samplers.TPESampler(seed=seed)
    study = optuna.create_study(direction="minimize", sampler=sampler)
    study.optimize(objective, n_trials=n_trials)
    return study.best_params


def benchmark_all_optimizers(n_tune_functions: int = 2, n_test_functions: int = 2,
                             n_tuning_trials: int = 10, n_dims: int = 2, save_path: str | None = None,
                             optimizer_names: list[str] | None = None,
                             seed: int | None = None, show: bool = True):
    """
    Benchmark optimizers and create a scatter plot.

    Args:
        n_tune_functions: Number of problems per function to use for tuning
        n_test_functions: Number of problems per function to use for testing
        n_tuning_trials: Number of trials for hyperparameter tuning
        n_dims: Number of dimensions for the test problems
        save_path: Path to save the plot
        optimizer_names: List of optimizer names to test. If None, test all optimizers.
        seed: Seed for problem generation and the tuner
        show: Display the plot when no save path is given
    """
    rng = np.random.default_rng(seed)
    tune_problems = generate_test_problems(n_samples=n_tune_functions, n_dims=n_dims,
                                           seed=int(rng.integers(0, 2**31 - 1)))
    test_problems = generate_test_problems(n_samples=n_test_functions, n_dims=n_dims,
                                           seed=int(rng.integers(0, 2**31 - 1)))

    if optimizer_names is None:
        optimizer_names = list(OPTIMIZERS.keys())
    else:
        unknown = [name for name in optimizer_names if name not in OPTIMIZERS]
        for name in unknown:
            logger.warning("Optimizer '%s' not found, skipping...", name)
        optimizer_names = [name for name in optimizer_names if name in OPTIMIZERS]

    logger.info("Benchmarking %d optimizers on %d-d problems (%d tuning trials)",
                len(optimizer_names), n_dims, n_tuning_trials)

    results = []
    for name in optimizer_names:
        optimizer = OPTIMIZERS[name]
        if n_tuning_trials > 0:
            best_params = tune_minimizer(optimizer, problems=tune_problems, n_trials=n_tuning_trials, seed=seed)
        else:
            best_params = {}

        log_pg, time_elapsed = multivariate_model_runner(minimizer=optimizer, problems=test_problems,
                                                         **best_params)
        results.append({
            'name': name,
            'log_pg': log_pg,
            'time_elapsed': time_elapsed,
            'best_params': best_params
        })

    if results:
        create_benchmark_plot(results, save_path=save_path, show=show)

    return results


def create_benchmark_plot(results, save_path: str | None = None, show: bool = True):
    """Create a scatter plot of optimizer performance."""
    names = [r['name'] for r in results]
    log_pgs = [r['log_pg'] for r in results]
    times = [r['time_elapsed'] for r in results]

    plt.figure(figsize=(12, 8))
    plt.scatter(times, log_pgs, s=100, alpha=0.7)

    # Add labels for each point
    for i, name in enumerate(names):
        plt.annotate(name.replace('minimize_', ''),
                     (times[i], log_pgs[i]),
                     xytext=(5, 5), textcoords='offset points',
                     fontsize=9, alpha=0.8)

    plt.xlabel('Time Elapsed (seconds)')
    plt.ylabel('log10 Projected Gradient Norm')
    plt.title('Optimizer Performance Comparison\n(Lower and Left is Better)')
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    if save_path is not None:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        logger.info("Plot saved as '%s'", save_path)
    elif show:
        plt.show()
    plt.close()


def plot_convergence(fun_history: list[float], save_path: str | None = None, title: str = "L-BFGS-B convergence"):
    """Objective value per accepted iterate, relative to the final value."""
    values = np.asarray(fun_history, dtype=float)
    gap = values - values[-1]
    gap[gap <= 0] = np.nan

    plt.figure(figsize=(8, 5))
    plt.semilogy(np.arange(len(values)), gap, 'o-')
    plt.xlabel('Iteration')
    plt.ylabel('f(x_k) - f(x_final)')
    plt.title(title)
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    if save_path is not None:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
    else:
        plt.show()
    plt.close()


def _echo_result(result):
    click.echo(f"status: {result.status.value}")
    click.echo(f"iterations: {result.n_iter} (f evals: {result.n_fev}, grad evals: {result.n_gev})")
    click.echo(f"f(x): {result.fun:.10g}")
    click.echo(f"|projected gradient|_inf: {result.projected_grad_norm:.3e}")
    click.echo("x: " + " ".join(f"{v:.10g}" for v in result.x))
    if result.message:
        click.echo(f"message: {result.message}")


@click.group()
@click.option('--verbose', is_flag=True, help='Log every iteration')
def cli(verbose):
    set_package_level("DEBUG" if verbose else "INFO")


@cli.command()
@click.option('--tol', default=1e-4, show_default=True, help='Projected gradient tolerance')
@click.option('--m', 'm', default=10, show_default=True, help='History size')
@click.option('--max-iter', default=10000, show_default=True, help='Iteration cap')
def demo(tol, m, max_iter):
    """Minimize x^T A x + b^T x subject to x_2 >= 0 from (0.3, 0.3)."""
    solver = LBFGSB(fun_generator.QUADRATIC_LOWER, fun_generator.QUADRATIC_UPPER,
                    tol=tol, m=m, max_iter=max_iter)
    x0 = fun_generator.QUADRATIC_X0.copy()
    try:
        result = solver.solve(x0, fun_generator.quadratic, fun_generator.quadratic_grad)
    except BoxSolverError as exc:
        raise click.ClickException(str(exc))
    _echo_result(result)


@cli.command()
@click.option('--problem', type=click.Choice(list(fun_generator.FUNCTIONS_AND_OPTIMA.keys())),
              default='rosenbrock', help='Test function')
@click.option('--n-dims', default=2, show_default=True, help='Number of dimensions')
@click.option('--half-width', default=2.0, show_default=True, help='Half width of the box around the optimum')
@click.option('--transform/--no-transform', default=False, help='Apply a random affine transformation')
@click.option('--seed', default=None, type=int, help='Random seed for the transformation')
@click.option('--tol', default=1e-4, show_default=True, help='Projected gradient tolerance')
@click.option('--m', 'm', default=10, show_default=True, help='History size')
@click.option('--max-iter', default=10000, show_default=True, help='Iteration cap')
@click.option('--plot-path', default=None, help='Save a contour plot with the iterate path (2-d only)')
@click.option('--trace-path', default=None, help='Save a convergence plot')
def solve(problem, n_dims, half_width, transform, seed, tol, m, max_iter, plot_path, trace_path):
    """Solve a box-constrained test problem."""
    bounded = fun_generator.get_bounded_problem(problem, n_dims=n_dims, half_width=half_width,
                                                transform=transform, seed=seed)
    solver = LBFGSB(bounded.lower, bounded.upper, tol=tol, m=m, max_iter=max_iter)
    try:
        result = solver.solve(bounded.initial_guess.copy(), bounded.fun, bounded.jac)
    except BoxSolverError as exc:
        raise click.ClickException(str(exc))
    _echo_result(result)

    if plot_path is not None:
        if n_dims != 2:
            raise click.UsageError("--plot-path needs --n-dims 2")
        fun_generator.visualize_function(bounded.fun, bounded.lower, bounded.upper, path=result.x_history,
                                         optimum=bounded.unconstrained_optimum, title=problem,
                                         save_path=plot_path)
        click.echo(f"Plot saved as '{plot_path}'")
    if trace_path is not None:
        plot_convergence(result.fun_history, save_path=trace_path, title=f"{problem} ({n_dims}-d)")
        click.echo(f"Plot saved as '{trace_path}'")


@cli.command()
@click.option('--n-trials', default=50, help='Number of trials for hyperparameter tuning')
@click.option('--optimizer', type=click.Choice(list(OPTIMIZERS.keys())),
              default='minimize_lbfgsb', help='Which optimizer to tune')
@click.option('--n-dims', default=5, help='Number of dimensions for the test problems')
@click.option('--n-samples', default=2, help='Problems per test function')
@click.option('--seed', default=None, type=int, help='Random seed for reproducibility')
def tune(n_trials, optimizer, n_dims, n_samples, seed):
    """Tune hyperparameters for a specific optimizer."""
    minimizer_func = OPTIMIZERS[optimizer]
    problems = generate_test_problems(n_samples=n_samples, n_dims=n_dims, seed=seed)
    best_params = tune_minimizer(minimizer_to_test=minimizer_func, problems=problems, n_trials=n_trials,
                                 seed=seed)

    click.echo(f"Best parameters found for {optimizer}:")
    for param, value in best_params.items():
        click.echo(f"  {param}: {value}")


@cli.command()
def list_optimizers():
    """List all available optimizers."""
    click.echo("Available optimizers:")
    click.echo("-" * 40)
    for i, name in enumerate(sorted(OPTIMIZERS.keys()), 1):
        # Extract the algorithm name from the function name
        algo_name = name.replace('minimize_', '').replace('_', ' ').title()
        click.echo(f"{i:2d}. {name:25} ({algo_name})")
    click.echo(f"\nTotal: {len(OPTIMIZERS)} optimizers")


@cli.command()
@click.option('--n-tune-functions', default=2, help='Problems per function to use for tuning')
@click.option('--n-test-functions', default=2, help='Problems per function to use for testing')
@click.option('--n-tuning-trials', default=10, help='Number of trials for hyperparameter tuning')
@click.option('--save-path', default=None, help='Path to save the plot')
@click.option('--n-dims', default=2, help='Number of dimensions for the test problems')
@click.option('--seed', default=None, type=int, help='Random seed for reproducibility')
@click.option('--optimizers', multiple=True, type=click.Choice(list(OPTIMIZERS.keys())),
              help='Specific optimizers to test (can specify multiple times). If not specified, test all optimizers.')
def benchmark(n_tune_functions, n_test_functions, n_tuning_trials, save_path, n_dims, seed, optimizers):
    """Benchmark optimizers and create a scatter plot."""
    # Convert tuple to list, or None if empty
    optimizer_list = list(optimizers) if optimizers else None

    results = benchmark_all_optimizers(n_tune_functions=n_tune_functions,
                                       n_test_functions=n_test_functions,
                                       n_tuning_trials=n_tuning_trials,
                                       n_dims=n_dims,
                                       save_path=save_path,
                                       seed=seed,
                                       optimizer_names=optimizer_list)

    click.echo("BENCHMARK SUMMARY")
    for result in sorted(results, key=lambda x: x['log_pg']):
        click.echo(f"{result['name']:25} | log10 |pg|: {result['log_pg']:8.3f} | time: {result['time_elapsed']:6.2f}s")


if __name__ == '__main__':
    cli()

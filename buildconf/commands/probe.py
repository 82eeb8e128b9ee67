import click
import os
from ..decorators import handle_exceptions
from ..probes import DEFAULT_TIMEOUT, Probe, ProbeKind, ProbeRunner

@click.command()
@click.argument("kind", type=click.Choice([k.value for k in ProbeKind]))
@click.argument("query")
@click.option("--compiler", default=None, help="C compiler to probe with. Defaults to $CC or cc.")
@click.option("--timeout", default=DEFAULT_TIMEOUT, show_default=True, help="Seconds before a probe counts as unsupported.")
@handle_exceptions
def probe(kind, query, compiler, timeout):
    """Run a single capability probe and print its outcome.

    KIND is one of compiler_flag, header, symbol, library, external_command.
    """
    runner = ProbeRunner(compiler=compiler or os.environ.get("CC") or "cc", timeout=timeout)
    outcome = runner.run(Probe(name=query, kind=ProbeKind(kind), query=query))
    status = "supported" if outcome.supported else "unsupported"
    detail = f" ({outcome.detail})" if outcome.detail else ""
    click.echo(f"{kind} {query}: {status}{detail}")

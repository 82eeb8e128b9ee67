import click
from ..decorators import handle_exceptions
from ..engine import run_pass
from .common import collect_overrides, host_options, load_declaration

def format_value(value):
    if isinstance(value, bool):
        return "ON" if value else "OFF"
    return value

@click.command()
@host_options
@click.option("--flags", "show_flags", is_flag=True, help="Also print accumulated compiler and linker flags.")
@click.pass_context
@handle_exceptions
def show(ctx, definitions, os_name, arch, compiler_family, show_flags):
    """Print every resolved option and path without writing any file."""
    declaration = load_declaration(ctx)
    result = run_pass(declaration, collect_overrides(definitions),
                      os_name=os_name, arch=arch, compiler=compiler_family)
    if not result.ok:
        ctx.exit(1)

    for name, value in result.record.items():
        click.echo(f"{name}={format_value(value)}")
    if show_flags:
        click.echo(f"C_FLAGS={' '.join(result.record.compile_flags)}")
        click.echo(f"LINKER_FLAGS={' '.join(result.record.link_flags)}")
        click.echo(f"DEFINITIONS={' '.join(result.record.definitions)}")

import click
import json
import os
from ..artifacts import write_artifacts
from ..cli_logger import logger
from ..decorators import handle_exceptions
from ..engine import run_pass
from .common import collect_overrides, host_options, load_declaration

@click.command()
@host_options
@click.option("--out", "out_dir", default=None, help="Directory for generated files. Defaults to [artifacts].directory.")
@click.option("--dry-run", is_flag=True, help="Print the generated files instead of writing them.")
@click.option("--json", "as_json", is_flag=True, help="Print the resolved record as JSON.")
@click.pass_context
@handle_exceptions
def resolve(ctx, definitions, os_name, arch, compiler_family, out_dir, dry_run, as_json):
    """Resolve options and paths and generate the configuration files."""
    declaration = load_declaration(ctx)
    overrides = collect_overrides(definitions)
    logger.info(f"Configuring {declaration.project} {declaration.version}...")

    result = run_pass(declaration, overrides, os_name=os_name, arch=arch, compiler=compiler_family)
    if not result.ok:
        logger.error("Configuration failed; no files were generated.")
        ctx.exit(1)

    for note in result.notes:
        logger.step_info(f"-- {note.entity}: {note.reason}", indent=2)

    if dry_run:
        for artifact in result.artifacts:
            click.echo(f"==> {artifact.path} <==")
            click.echo(artifact.content, nl=False)
    else:
        out_dir = os.path.join(ctx.obj["path"], out_dir or declaration.out_dir)
        written = write_artifacts(result.artifacts, out_dir)
        logger.success(f"Generated {len(written)} file(s) in {out_dir}")

    if as_json:
        click.echo(json.dumps(result.record.as_dict(), indent=4))

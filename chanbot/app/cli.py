import click
from dotenv import load_dotenv

from ..shared.config import Config
from ..shared.exceptions import ConfigurationError
from ..shared.runtime_config import RuntimeConfig
from . import main as app_main

__all__ = ("app", "main")


def _log_level(verbose: bool, debug: bool, trace: bool) -> str | None:
    if trace:
        return "TRACE"
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    return None


def _cmd_check(config_path: str | None) -> int:
    load_dotenv()
    loader = Config(config_path)
    config = RuntimeConfig.build(loader)
    irc = loader.model.irc
    click.echo(f"config: {loader.config_path}")
    click.echo(f"server: {irc.server}:{irc.port} tls={irc.tls} nick={irc.nickname}")
    click.echo(f"channels: {', '.join(irc.channels) or '-'}")
    click.echo(f"default channel: {config.channel}")
    click.echo(f"url log db: {config.url_log_db}")
    click.echo(f"+o ACL rules: {len(config.mode_o_acl)}")
    click.echo(f"auto +o ACL rules: {len(config.auto_o_acl)}")
    click.echo(f"url rewrite rules: {len(config.url_rewrite)}")
    click.echo(f"url commands: {', '.join(sorted(config.url_cmds)) or '-'}")
    return 0


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option(
    "-c",
    "--config",
    "config_path",
    envvar="CHANBOT_CONFIG",
    default=None,
    help="Path to the YAML config file.",
)
@click.pass_context
def app(ctx: click.Context, config_path: str | None) -> None:
    ctx.obj = {"config_path": config_path}
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        raise click.exceptions.Exit(0)


@app.command()
@click.option("-v", "--verbose", is_flag=True, help="Log at INFO level.")
@click.option("-d", "--debug", is_flag=True, help="Log at DEBUG level.")
@click.option("-t", "--trace", is_flag=True, help="Log at TRACE level.")
@click.pass_context
def run(ctx: click.Context, verbose: bool, debug: bool, trace: bool) -> None:
    raise click.exceptions.Exit(
        app_main.main(ctx.obj["config_path"], _log_level(verbose, debug, trace))
    )


@app.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    raise click.exceptions.Exit(_cmd_check(ctx.obj["config_path"]))


def main() -> int:
    try:
        rv = app.main(prog_name="chanbot", standalone_mode=False)
        return rv if isinstance(rv, int) else 0
    except click.exceptions.Exit as e:
        return int(e.exit_code)
    except click.exceptions.ClickException as e:
        e.show()
        return e.exit_code
    except ConfigurationError as e:
        click.echo(f"Config error: {e}", err=True)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())

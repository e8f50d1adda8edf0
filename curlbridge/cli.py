"""curlbridge CLI - send, import and export cURL-style HTTP requests."""

import json
import logging
import sys
from pathlib import Path

import click

HISTORY_FILE = Path.home() / ".curlbridge" / "history.json"

TOOL_HELP = """\
curlbridge — cURL import/export and environment-aware HTTP dispatch.

\b
MODES
─────
  Direct:       curlbridge METHOD URL [-H ...] [-d BODY]
  Curl import:  curlbridge --import-curl "curl ..."
  Stored:       curlbridge --request-file request.json
  Replay:       curlbridge --replay INDEX

\b
CURL IMPORT
───────────
  curlbridge --import-curl "curl -X POST https://api.example.com/users \\
      -H 'Content-Type: application/json' -d '{\\"name\\":\\"x\\"}'"

  Recognized flags: -X/--request, -H/--header,
  -d/--data/--data-raw/--data-binary. Other flags are ignored.
  -d without -X sends a POST. Several -d values are joined with '&'.

\b
COPY AS CURL
────────────
  Add --to-curl to any mode to print the request as a curl command
  instead of sending it. --dry-run prints the request record as JSON.

\b
ENVIRONMENTS
────────────
  {{name}} placeholders in the URL, header values and body are filled
  from the active environment just before sending. Unknown names stay
  as written and are reported as warnings.

  \b
  -e staging           use environment 'staging' from the config
  --env-file .env      use a .env file as the environment
  --no-env             send without an environment
  --check-vars         list unresolved placeholders, exit 1 if any

\b
CONFIG FILE FORMAT (.curlbridge.yaml)
─────────────────────────────────────
  Config resolution order:
    1. -c/--config flag (explicit path)
    2. .curlbridge.yaml / .curlbridge.yml / curlbridge.yaml / curlbridge.yml in CWD
    3. ~/.curlbridge/config.yaml (global)

  \b
  defaults:
    timeout: 30000                  # milliseconds
    follow_redirects: true
    ssl_verification: true
    max_history_items: 50
    env_file: .env                  # feeds ${VAR} references below
    default_headers:
      Accept: application/json
  active_environment: staging
  environments:
    staging:
      variables:
        host: api.staging.example.com
        token: {value: "${STAGING_TOKEN}", description: API token}

\b
OUTPUT FORMAT
─────────────
    STATUS: 200 OK
    TIME: 45ms
    BODY:
    {"id": 1}

  --verbose adds response headers. --raw prints only the body.
  Network failures print ERROR: <message> and exit 1.

\b
HISTORY
───────
  curlbridge --history          Show recent requests
  curlbridge --replay 0         Replay request at index 0
  curlbridge --clear-history    Forget all entries
"""


@click.command(
    cls=click.Command,
    help=TOOL_HELP,
    context_settings={"max_content_width": 88},
)
@click.argument("method", required=False)
@click.argument("url", required=False)
@click.option(
    "-c",
    "--config",
    "config_file",
    default=None,
    help="Config file path. Default: .curlbridge.yaml in CWD, then ~/.curlbridge/config.yaml.",
)
@click.option(
    "-H",
    "--header",
    multiple=True,
    help="HTTP header as 'Name: Value'. Repeatable.",
)
@click.option("-d", "--data", "data", default=None, help="Request body.")
@click.option(
    "--import-curl",
    "import_curl_cmd",
    default=None,
    help="Parse a curl command string and send it.",
)
@click.option(
    "--request-file",
    "request_file",
    default=None,
    help="Send a stored request record (.json or .yaml).",
)
@click.option(
    "--to-curl",
    "print_curl",
    is_flag=True,
    default=False,
    help="Print the request as a curl command instead of sending it.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Print the request record as JSON instead of sending it.",
)
@click.option("-e", "--env", "env_name", default=None, help="Environment name from the config.")
@click.option(
    "--env-file",
    "env_file",
    default=None,
    help="Use a .env file as the active environment.",
)
@click.option("--no-env", is_flag=True, default=False, help="Send without an environment.")
@click.option(
    "--check-vars",
    is_flag=True,
    default=False,
    help="List unresolved {{placeholders}} and exit 1 if there are any.",
)
@click.option(
    "--timeout",
    type=int,
    default=None,
    help="Request timeout in milliseconds. Default: 30000.",
)
@click.option("--no-redirects", is_flag=True, default=False, help="Do not follow redirects.")
@click.option("--insecure", is_flag=True, default=False, help="Skip TLS certificate checks.")
@click.option(
    "--verbose",
    is_flag=True,
    default=False,
    help="Include response headers in output.",
)
@click.option(
    "--raw",
    is_flag=True,
    default=False,
    help="Output the response body only. Useful for piping.",
)
@click.option("--history", is_flag=True, default=False, help="Show request history.")
@click.option(
    "--replay",
    type=int,
    default=None,
    metavar="INDEX",
    help="Replay a request from history by index.",
)
@click.option("--clear-history", is_flag=True, default=False, help="Delete request history.")
@click.option("--debug", is_flag=True, default=False, help="Log debug output to stderr.")
def main(
    method,
    url,
    config_file,
    header,
    data,
    import_curl_cmd,
    request_file,
    print_curl,
    dry_run,
    env_name,
    env_file,
    no_env,
    check_vars,
    timeout,
    no_redirects,
    insecure,
    verbose,
    raw,
    history,
    replay,
    clear_history,
    debug,
):
    """Send, import and export cURL-style HTTP requests."""
    from curlbridge.core import load_config, load_env, load_settings, resolve_config_path
    from curlbridge.errors import ConfigurationError
    from curlbridge.history import HistoryStore

    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    elif not logging.getLogger("curlbridge").handlers:
        # Problems are reported through click.echo; keep log records off stderr
        logging.getLogger("curlbridge").addHandler(logging.NullHandler())

    # --- Load config ---
    try:
        config_path = resolve_config_path(config_file)
        config = load_config(config_path)
        env_vars = load_env(config["defaults"].get("env_file"), config.get("_config_dir"))
        settings = load_settings(config, env_vars)
    except ConfigurationError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    store = HistoryStore(HISTORY_FILE, max_items=settings.max_history_items)

    # --- Dispatch ---

    if clear_history:
        store.clear()
        click.echo("History cleared.")
        return

    if history:
        _cmd_history(store)
        return

    request = _select_request(
        method,
        url,
        header,
        data,
        import_curl_cmd,
        request_file,
        replay,
        store,
    )
    if request is None:
        ctx = click.get_current_context()
        click.echo(ctx.get_help())
        ctx.exit(1)

    if print_curl:
        from curlbridge.curl import to_curl

        click.echo(to_curl(request))
        return

    if dry_run:
        click.echo(json.dumps(request.to_dict(), indent=2))
        return

    try:
        environment = _select_environment(config, env_vars, env_name, env_file, no_env)
    except ConfigurationError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    if check_vars:
        _cmd_check_vars(request, environment)
        return

    if timeout:
        settings.timeout = timeout
    if no_redirects:
        settings.follow_redirects = False
    if insecure:
        settings.ssl_verification = False

    _cmd_send(request, settings, environment, store, verbose, raw)


# ── Subcommand implementations ──────────────────────────────────────────


def _select_request(
    method,
    url,
    header,
    data,
    import_curl_cmd,
    request_file,
    replay,
    store,
):
    """Build the Request for this invocation, or None if no mode applies."""
    from curlbridge.core import load_request_file
    from curlbridge.curl import derive_name, import_curl
    from curlbridge.errors import ConfigurationError
    from curlbridge.models import Request

    extra_headers = _parse_headers(header)

    if replay is not None:
        entry = store.get(replay)
        if entry is None:
            click.echo(f"Invalid index {replay}. Use --history to list.", err=True)
            sys.exit(1)
        return entry.request

    if import_curl_cmd:
        request = import_curl(import_curl_cmd)
        if request is None:
            click.echo("ERROR: not a valid cURL command", err=True)
            sys.exit(1)
        request.headers.update(extra_headers)
        return request

    if request_file:
        try:
            request = load_request_file(request_file)
        except ConfigurationError as e:
            click.echo(f"ERROR: {e}", err=True)
            sys.exit(1)
        request.headers.update(extra_headers)
        return request

    if method and url:
        return Request(
            name=derive_name(url),
            url=url,
            method=method.upper(),
            headers=extra_headers,
            body=data or "",
        )

    return None


def _select_environment(config, env_vars, env_name, env_file, no_env):
    from curlbridge.core import environment_from_dotenv, load_environments, select_environment

    if no_env:
        return None
    if env_file:
        return environment_from_dotenv(env_file)
    environments = load_environments(config, env_vars)
    return select_environment(environments, env_name, config)


def _cmd_check_vars(request, environment):
    from curlbridge.templating import unresolved_variables

    missing = unresolved_variables(request, environment)
    if not missing:
        click.echo("All variables resolved.")
        return
    where = "not found in current environment" if environment else "no environment selected"
    click.echo(f"Unresolved variables ({where}):")
    for name in missing:
        click.echo(f"  {{{{{name}}}}}")
    sys.exit(1)


def _cmd_send(request, settings, environment, store, verbose, raw):
    from curlbridge.dispatch import Dispatcher
    from curlbridge.templating import unresolved_variables

    missing = unresolved_variables(request, environment)
    if missing:
        where = "not found in current environment" if environment else "no environment selected"
        click.echo(
            f"WARNING: unresolved variables {', '.join(missing)} - {where}",
            err=True,
        )

    dispatcher = Dispatcher(history=store)
    summary = dispatcher.dispatch(request, settings, environment)
    if not summary.ok:
        click.echo(f"ERROR: {summary.status}", err=True)
        sys.exit(1)

    click.echo(_format_output(summary, verbose=verbose, raw=raw))


def _cmd_history(store):
    entries = store.entries()
    if not entries:
        click.echo("No request history.")
        return
    click.echo("Request history:\n")
    for i, entry in enumerate(entries):
        req = entry.request
        status = (entry.response or {}).get("status", "?")
        ts = entry.timestamp.isoformat(timespec="seconds")
        click.echo(f"  [{i}] {req.method:<7} {req.url}  -> {status}  ({ts})")


# ── Helpers ──────────────────────────────────────────────────────────────


def _parse_headers(header_tuples):
    """Parse -H 'Name: Value' tuples into a dict."""
    headers = {}
    for h in header_tuples:
        if ":" in h:
            k, v = h.split(":", 1)
            headers[k.strip()] = v.strip()
    return headers


def _format_body(body):
    if isinstance(body, dict | list):
        return json.dumps(body, indent=2)
    return "" if body is None else str(body)


def _format_output(summary, verbose=False, raw=False):
    if raw:
        return _format_body(summary.body)
    lines = [
        f"STATUS: {summary.status_code} {summary.status}".rstrip(),
        f"TIME: {int(summary.response_time)}ms",
    ]
    if verbose and summary.headers:
        lines.append("HEADERS:")
        lines.extend(f"  {k}: {v}" for k, v in summary.headers.items())
    lines.append("BODY:")
    lines.append(_format_body(summary.body))
    return "\n".join(lines)

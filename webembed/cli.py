"""Command-line entry point: collect, register, render, check budgets, write."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from webembed.codegen import render, route_count
from webembed.collector import collect
from webembed.config import Config, find_rc_file, load_rc_file, resolve_config
from webembed.engines import get_engine
from webembed.errors import ExitCode, SizeBudgetError, WebEmbedError
from webembed.postprocess import clean
from webembed.registry import Registry, build_registry

log = logging.getLogger("webembed")

URI_HANDLER_MARGIN = 5


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="webembed",
        description="Embed a directory of built web files into a C/C++ source for ESP32 web servers.",
    )
    parser.add_argument("--config", help="RC file to use instead of searching for .webembedrc.json.")
    parser.add_argument("-e", "--engine", help="Target server: psychic, psychic2, async or espidf (default: psychic).")
    parser.add_argument("-s", "--sourcepath", dest="source_path", help="Directory with the built web files.")
    parser.add_argument("-o", "--outputfile", dest="output_file", help="Generated file (default: webembed.h).")
    parser.add_argument("--etag", help="ETag support: true, false or compiler (default: false).")
    parser.add_argument("--gzip", help="Gzip payloads: true, false or compiler (default: true).")
    parser.add_argument("--cachetime", dest="cache_time", help="Cache-Control max-age in seconds, 0 = no-cache.")
    parser.add_argument("--created", action="store_true", default=None, help="Add a creation timestamp.")
    parser.add_argument("--version", help="Version string emitted as <PREFIX>_VERSION.")
    parser.add_argument("--espmethod", dest="method_name", help="Name of the generated init function.")
    parser.add_argument("--define", dest="define_prefix", help="Prefix of the generated macros.")
    parser.add_argument("--basepath", dest="base_path", help='URL prefix for all routes, e.g. "/ui".')
    parser.add_argument(
        "--exclude",
        action="append",
        help="Glob of files to skip; repeatable or comma-separated (replaces the defaults).",
    )
    parser.add_argument("--maxsize", dest="max_size", help="Fail when the raw total exceeds this (e.g. 400k).")
    parser.add_argument("--maxgzipsize", dest="max_gzip_size", help="Fail when the stored total exceeds this.")
    parser.add_argument(
        "--noindexcheck", dest="no_index_check", action="store_true", default=None,
        help="Do not require an index.html/index.htm.",
    )
    parser.add_argument(
        "--dryrun", "--dry-run", dest="dry_run", action="store_true", default=None,
        help="Report what would be generated without writing the output file.",
    )
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    rc_path = find_rc_file(args.config)
    rc = {}
    if rc_path is not None:
        log.info("Using config from: %s", rc_path)
        rc = load_rc_file(rc_path)
    return resolve_config(vars(args), rc)


def check_budgets(registry: Registry, config: Config) -> None:
    if config.max_size is not None and registry.total_size > config.max_size:
        raise SizeBudgetError("size", config.max_size, registry.total_size)
    if config.max_gzip_size is not None and registry.total_stored_size > config.max_gzip_size:
        raise SizeBudgetError("gzipSize", config.max_gzip_size, registry.total_stored_size)


def max_uri_handlers_hint(config: Config, routes: int) -> str | None:
    template = get_engine(config.engine).max_uri_handlers_hint
    if template is None:
        return None
    example = template.format(recommended=routes + URI_HANDLER_MARGIN, method=config.method_name)
    return (
        f"The generated code registers {routes} routes; make sure max_uri_handlers allows them:\n"
        f"  {example}"
    )


def generate(config: Config) -> tuple[Registry, str]:
    files = collect(
        config.source_path,
        config.exclude,
        require_index=not config.no_index_check,
        engine=config.engine.value,
    )
    registry = build_registry(files)
    log.info("Translation to header file")
    text = clean(render(registry.assets, registry.extension_groups, config))
    check_budgets(registry, config)
    return registry, text


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    args = parse_args(argv)

    try:
        config = load_config(args)
        log.info("Generate code for %s engine", config.engine.value)
        registry, text = generate(config)
    except WebEmbedError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return exc.exit_code
    except OSError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return ExitCode.ERROR

    log.info(
        "%d files, %dkB original size, %dkB gzip size",
        registry.file_count,
        round(registry.total_size / 1024),
        round(registry.total_stored_size / 1024),
    )

    output = Path(config.output_file)
    if config.dry_run:
        log.info("Dry run: %s not written (%dkB)", output, round(len(text) / 1024))
        return ExitCode.OK

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
    except OSError as exc:
        print(f"ERROR: cannot write {output}: {exc}", file=sys.stderr)
        return ExitCode.ERROR
    log.info("%s %dkB size", output, round(len(text) / 1024))

    hint = max_uri_handlers_hint(config, route_count(registry.assets, config))
    if hint:
        log.info(hint)
    return ExitCode.OK


if __name__ == "__main__":
    raise SystemExit(main())

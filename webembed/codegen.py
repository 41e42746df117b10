"""Render the embeddable source file for one of the supported engines.

One emitter serves all engines; ``webembed.engines`` supplies the call
shapes. ETag and gzip are tri-state switches: ``true``/``false`` are decided
here and only the active branch is written, ``compiler`` writes both
branches behind ``#ifdef <PREFIX>_ENABLE_<FEATURE>`` for the target build.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Sequence

from webembed.config import Config, TriState
from webembed.engines import EngineDescriptor, get_engine
from webembed.registry import Asset, ExtensionGroup

BODY_INDENT = "    "
BYTES_PER_LINE = 12


def bytes_to_c_array(data: bytes) -> str:
    if not data:
        return ""
    items = [f"0x{byte:02x}" for byte in data]
    lines: list[str] = []
    for index in range(0, len(items), BYTES_PER_LINE):
        chunk = ", ".join(items[index : index + BYTES_PER_LINE])
        lines.append(f"    {chunk},")
    return "\n".join(lines)


def c_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _when_on(enabled: list[str], disabled: list[str], macro: str) -> list[str]:
    return enabled


def _when_off(enabled: list[str], disabled: list[str], macro: str) -> list[str]:
    return disabled


def _when_compiler(enabled: list[str], disabled: list[str], macro: str) -> list[str]:
    lines = [f"#ifdef {macro}", *enabled]
    if disabled:
        lines += ["#else", *disabled]
    return lines + ["#endif"]


SWITCH_CASES: dict[TriState, Callable[[list[str], list[str], str], list[str]]] = {
    TriState.ON: _when_on,
    TriState.OFF: _when_off,
    TriState.COMPILER: _when_compiler,
}


def switch(state: TriState, macro: str, enabled: Iterable[str], disabled: Iterable[str] = ()) -> list[str]:
    return SWITCH_CASES[state](list(enabled), list(disabled), macro)


@dataclass(frozen=True)
class Route:
    asset: Asset
    uri: str
    is_default: bool

    @property
    def suffix(self) -> str:
        if self.is_default:
            return f"def_{self.asset.identifier_upper}"
        return self.asset.identifier_upper


class Generator:
    def __init__(self, config: Config, engine: EngineDescriptor) -> None:
        self.config = config
        self.engine = engine
        self.prefix = config.define_prefix
        self.etag_macro = f"{self.prefix}_ENABLE_ETAG"
        self.gzip_macro = f"{self.prefix}_ENABLE_GZIP"

    def file_uri(self, asset: Asset) -> str:
        return f"{self.config.base_path}/{asset.relative_path}"

    def etag_switch(self, enabled: Iterable[str], disabled: Iterable[str] = ()) -> list[str]:
        return switch(self.config.etag, self.etag_macro, enabled, disabled)

    def gzip_switch(self, enabled: Iterable[str], disabled: Iterable[str] = ()) -> list[str]:
        return switch(self.config.gzip, self.gzip_macro, enabled, disabled)

    def header(self, now: datetime | None) -> list[str]:
        lines = [f"//engine:   {self.engine.title}", f"//config:   {self.config.describe()}"]
        if self.config.created:
            lines.append(f"//created:  {(now or datetime.now()).isoformat(timespec='seconds')}")
        lines.append("//")
        for macro, state in ((self.etag_macro, self.config.etag), (self.gzip_macro, self.config.gzip)):
            if state is TriState.COMPILER:
                continue
            word = "ON" if state is TriState.ON else "OFF"
            lines += [
                f"#ifdef {macro}",
                f"#warning {macro} has no effect because it is permanently switched {word}",
                "#endif",
            ]
        return lines

    def defines(self, assets: Sequence[Asset], groups: Sequence[ExtensionGroup]) -> list[str]:
        lines = ["//"]
        if self.config.version:
            lines.append(f'#define {self.prefix}_VERSION "{c_string(self.config.version)}"')
        lines += [
            f"#define {self.prefix}_COUNT {len(assets)}",
            f"#define {self.prefix}_SIZE {sum(len(asset.raw_bytes) for asset in assets)}",
            f"#define {self.prefix}_SIZE_GZIP {sum(len(asset.stored_bytes) for asset in assets)}",
            "//",
        ]
        lines += [f"#define {self.prefix}_FILE_{asset.identifier_upper}" for asset in assets]
        lines.append("//")
        lines += [f"#define {self.prefix}_{group.extension}_FILES {group.count}" for group in groups]
        lines.append("//")
        return lines + list(self.engine.includes) + ["//"]

    def array(self, name: str, data: bytes) -> list[str]:
        # zero-length arrays are not valid C; keep one padding byte, the length stays 0
        return [
            self.engine.array_decl.format(name=name, size=max(len(data), 1)),
            bytes_to_c_array(data) or "    0x00",
            "};",
        ]

    def data_arrays(self, assets: Sequence[Asset]) -> list[str]:
        gzipped: list[str] = []
        raw: list[str] = []
        for asset in assets:
            gzipped += self.array(f"datagzip_{asset.identifier}", asset.stored_bytes)
            raw += self.array(f"data_{asset.identifier}", asset.raw_bytes)
        return self.gzip_switch(gzipped, raw) + ["//"]

    def etag_constants(self, assets: Sequence[Asset]) -> list[str]:
        constants = [
            self.engine.etag_decl.format(id=asset.identifier, hash=asset.content_hash) for asset in assets
        ]
        return self.etag_switch(constants) + ["//"]

    def manifest(self, assets: Sequence[Asset]) -> list[str]:
        lines = [line.format(prefix=self.prefix) for line in self.engine.manifest_struct]
        lines.append(self.engine.manifest_open.format(prefix=self.prefix))
        for asset in assets:
            gzip_size = 0 if self.config.gzip is TriState.OFF else asset.gzip_size

            def entry(etag: str) -> str:
                return (
                    f'  {{ "{c_string(self.file_uri(asset))}", {len(asset.raw_bytes)}, {gzip_size}, '
                    f'{etag}, "{asset.mime_type}" }},'
                )

            lines += self.etag_switch([entry(f"etag_{asset.identifier}")], [entry(self.engine.null)])
        lines += ["};", self.engine.manifest_count.format(prefix=self.prefix), "//"]
        return lines

    def hook(self) -> list[str]:
        return [self.engine.hook_decl.format(prefix=self.prefix), "//"]

    def routes(self, assets: Sequence[Asset]) -> tuple[list[Route], Asset | None]:
        """Per-file routes plus bare default routes, and the asset for the default slot.

        With a base path on an engine that has a default endpoint slot, the
        first default document is flagged as that slot instead of getting a
        second handler. Otherwise every default document gets its own
        handler on the base path (or ``/``).
        """
        bare_uri = self.config.base_path or "/"
        use_slot = bool(self.config.base_path) and self.engine.default_slot is not None
        routes: list[Route] = []
        slot: Asset | None = None
        for asset in assets:
            if asset.is_default_document:
                if not use_slot:
                    routes.append(Route(asset, bare_uri, is_default=True))
                elif slot is None:
                    slot = asset
            routes.append(Route(asset, self.file_uri(asset), is_default=False))
        return routes, slot

    def payload(self, templates: Iterable[str], asset: Asset) -> list[str]:
        lines: list[str] = []
        for template in templates:
            if "{array}" not in template:
                lines.append(template.format(mime=asset.mime_type))
                continue
            gzipped = template.format(
                mime=asset.mime_type, array=f"datagzip_{asset.identifier}", length=len(asset.stored_bytes)
            )
            raw = template.format(mime=asset.mime_type, array=f"data_{asset.identifier}", length=len(asset.raw_bytes))
            lines += self.gzip_switch([gzipped], [raw])
        return lines

    def set_header(self, name: str, value: str) -> str:
        return self.engine.set_header.format(name=name, value=value)

    def handler_body(self, route: Route) -> list[str]:
        asset = route.asset
        etag = f"etag_{asset.identifier}"

        def hook(status: int) -> str:
            return f'{self.prefix}_onFileServed("{c_string(route.uri)}", {status});'

        lines = self.etag_switch(line.format(etag=etag, hook=hook(304)) for line in self.engine.etag_check)
        lines += self.payload(self.engine.response_begin, asset)
        if asset.uses_compression:
            lines += self.gzip_switch([self.set_header("Content-Encoding", '"gzip"')])
        if self.config.cache_time:
            lines.append(self.set_header("Cache-Control", f'"max-age={self.config.cache_time}"'))
        else:
            lines.append(self.set_header("Cache-Control", '"no-cache"'))
        lines += self.etag_switch([self.set_header("ETag", etag)])
        lines += self.payload(self.engine.body, asset)
        lines.append(hook(200))
        lines += self.payload(self.engine.send, asset)
        return [line if line.startswith("#") else BODY_INDENT + line for line in lines]

    def inline_registration(self, assets: Sequence[Asset]) -> list[str]:
        routes, slot = self.routes(assets)
        lines = [self.engine.init_open.format(method=self.config.method_name)]
        for route in routes:
            endpoint = f"endpoint_{route.suffix}"
            flagged = slot is route.asset and not route.is_default
            assign = self.engine.endpoint_assign.format(endpoint=endpoint) if flagged else ""
            lines.append(self.engine.route_open.format(assign=assign, uri=c_string(route.uri)))
            lines += self.handler_body(route)
            lines += [self.engine.route_close.format(), ""]
            if flagged:
                lines += [self.engine.default_slot.format(endpoint=endpoint), ""]
        lines.append("}")
        return lines

    def table_registration(self, assets: Sequence[Asset]) -> list[str]:
        routes, _ = self.routes(assets)
        lines: list[str] = []
        for route in routes:
            names = {"handler": f"file_handler_{route.suffix}", "route": f"route_{route.suffix}"}
            lines += [line.format(**names) for line in self.engine.handler_open]
            lines += self.handler_body(route)
            lines += [line.format(**names) for line in self.engine.handler_close]
            lines.append("")
            lines += [line.format(uri=c_string(route.uri), **names) for line in self.engine.route_table]
            lines.append("//")
        lines.append(self.engine.init_open.format(method=self.config.method_name))
        lines += [self.engine.register.format(route=f"route_{route.suffix}") for route in routes]
        lines.append("}")
        return lines

    def render(self, assets: Sequence[Asset], groups: Sequence[ExtensionGroup], now: datetime | None) -> str:
        lines = self.header(now)
        lines += self.defines(assets, groups)
        lines += self.data_arrays(assets)
        lines += self.etag_constants(assets)
        lines += self.manifest(assets)
        lines += self.hook()
        if self.engine.inline_handlers:
            lines += self.inline_registration(assets)
        else:
            lines += self.table_registration(assets)
        return "\n".join(lines) + "\n"


def route_count(assets: Sequence[Asset], config: Config) -> int:
    routes, _ = Generator(config, get_engine(config.engine)).routes(assets)
    return len(routes)


def render(
    assets: Sequence[Asset],
    extension_groups: Sequence[ExtensionGroup],
    config: Config,
    now: datetime | None = None,
) -> str:
    """Generated source text before whitespace clean-up (see ``postprocess.clean``)."""
    return Generator(config, get_engine(config.engine)).render(assets, extension_groups, now)

"""Per-engine call shapes used by the route emitter.

Every template is a ``str.format`` pattern, so literal C braces are doubled.
Placeholders: ``{prefix}`` macro prefix, ``{method}`` init function name,
``{uri}`` route path, ``{mime}`` content type, ``{array}``/``{length}``
payload symbol and size, ``{etag}`` ETag constant, ``{hook}`` hook call,
``{name}``/``{value}`` response header, ``{assign}`` optional endpoint
capture, ``{endpoint}``/``{handler}``/``{route}`` generated symbol names.
"""

from __future__ import annotations

from dataclasses import dataclass

from webembed.config import Engine
from webembed.errors import ConfigError

CPP_MANIFEST_STRUCT = (
    "struct {prefix}_FileInfo {{",
    "  const char* path;",
    "  uint32_t size;",
    "  uint32_t gzipSize;",
    "  const char* etag;",
    "  const char* contentType;",
    "}};",
)
CPP_HOOK = 'extern "C" void __attribute__((weak)) {prefix}_onFileServed(const char* path, int statusCode) {{}}'


@dataclass(frozen=True)
class EngineDescriptor:
    name: str
    title: str
    includes: tuple[str, ...]
    array_decl: str
    etag_decl: str
    null: str
    manifest_struct: tuple[str, ...]
    manifest_open: str
    manifest_count: str
    hook_decl: str
    init_open: str
    etag_check: tuple[str, ...]
    response_begin: tuple[str, ...]
    set_header: str
    body: tuple[str, ...]
    send: tuple[str, ...]
    # C++ engines register lambdas inside the init function; ESP-IDF needs
    # free handler functions plus a static route table.
    inline_handlers: bool = True
    route_open: str = ""
    route_close: str = ""
    endpoint_assign: str = ""
    default_slot: str | None = None
    handler_open: tuple[str, ...] = ()
    handler_close: tuple[str, ...] = ()
    route_table: tuple[str, ...] = ()
    register: str = ""
    max_uri_handlers_hint: str | None = None


PSYCHIC = EngineDescriptor(
    name="psychic",
    title="PsychicHttpServer",
    includes=("#include <Arduino.h>", "#include <PsychicHttp.h>"),
    array_decl="const uint8_t {name}[{size}] = {{",
    etag_decl='const char * const etag_{id} = "{hash}";',
    null="nullptr",
    manifest_struct=CPP_MANIFEST_STRUCT,
    manifest_open="const {prefix}_FileInfo {prefix}_FILES[] = {{",
    manifest_count="const size_t {prefix}_FILE_COUNT = sizeof({prefix}_FILES) / sizeof({prefix}_FILES[0]);",
    hook_decl=CPP_HOOK,
    init_open="void {method}(PsychicHttpServer * server) {{",
    etag_check=(
        'if (request->hasHeader("If-None-Match") && request->header("If-None-Match").equals({etag})) {{',
        "  PsychicResponse response304(request);",
        "  response304.setCode(304);",
        "  {hook}",
        "  return response304.send();",
        "}}",
    ),
    response_begin=("PsychicResponse response(request);", 'response.setContentType("{mime}");'),
    set_header='response.addHeader("{name}", {value});',
    body=("response.setContent({array}, {length});",),
    send=("return response.send();",),
    route_open='  {assign}server->on("{uri}", HTTP_GET, [](PsychicRequest * request) {{',
    route_close="  }});",
    endpoint_assign="PsychicEndpoint * {endpoint} = ",
    default_slot="  server->defaultEndpoint = {endpoint};",
    max_uri_handlers_hint=(
        "PsychicHttpServer server;\n"
        "  server.config.max_uri_handlers = {recommended};\n"
        "  {method}(&server);\n"
        "  server.listen(80);"
    ),
)

PSYCHIC2 = EngineDescriptor(
    name="psychic2",
    title="PsychicHttpServerV2",
    includes=("#include <Arduino.h>", "#include <PsychicHttp.h>"),
    array_decl="const uint8_t {name}[{size}] = {{",
    etag_decl='const char * const etag_{id} = "{hash}";',
    null="nullptr",
    manifest_struct=CPP_MANIFEST_STRUCT,
    manifest_open="const {prefix}_FileInfo {prefix}_FILES[] = {{",
    manifest_count="const size_t {prefix}_FILE_COUNT = sizeof({prefix}_FILES) / sizeof({prefix}_FILES[0]);",
    hook_decl=CPP_HOOK,
    init_open="void {method}(PsychicHttpServer * server) {{",
    etag_check=(
        'if (request->hasHeader("If-None-Match") && request->header("If-None-Match").equals({etag})) {{',
        "  response->setCode(304);",
        "  {hook}",
        "  return response->send();",
        "}}",
    ),
    response_begin=('response->setContentType("{mime}");',),
    set_header='response->addHeader("{name}", {value});',
    body=("response->setContent({array}, {length});",),
    send=("return response->send();",),
    route_open='  {assign}server->on("{uri}", HTTP_GET, [](PsychicRequest * request, PsychicResponse * response) {{',
    route_close="  }});",
    endpoint_assign="PsychicEndpoint * {endpoint} = ",
    default_slot="  server->defaultEndpoint = {endpoint};",
    max_uri_handlers_hint=(
        "PsychicHttpServer server;\n"
        "  server.config.max_uri_handlers = {recommended};\n"
        "  {method}(&server);\n"
        "  server.listen(80);"
    ),
)

ASYNC = EngineDescriptor(
    name="async",
    title="ESPAsyncWebServer",
    includes=("#include <Arduino.h>", "#include <ESPAsyncWebServer.h>"),
    array_decl="const uint8_t {name}[{size}] PROGMEM = {{",
    etag_decl='const char * const etag_{id} = "{hash}";',
    null="nullptr",
    manifest_struct=CPP_MANIFEST_STRUCT,
    manifest_open="const {prefix}_FileInfo {prefix}_FILES[] = {{",
    manifest_count="const size_t {prefix}_FILE_COUNT = sizeof({prefix}_FILES) / sizeof({prefix}_FILES[0]);",
    hook_decl=CPP_HOOK,
    init_open="void {method}(AsyncWebServer * server) {{",
    etag_check=(
        'if (request->hasHeader("If-None-Match") && request->getHeader("If-None-Match")->value() == String({etag})) {{',
        "  {hook}",
        "  request->send(304);",
        "  return;",
        "}}",
    ),
    response_begin=('AsyncWebServerResponse * response = request->beginResponse(200, "{mime}", {array}, {length});',),
    set_header='response->addHeader("{name}", {value});',
    body=(),
    send=("request->send(response);",),
    route_open='  {assign}server->on("{uri}", HTTP_GET, [](AsyncWebServerRequest * request) {{',
    route_close="  }});",
)

ESPIDF = EngineDescriptor(
    name="espidf",
    title="ESP-IDF",
    includes=(
        "#include <stdint.h>",
        "#include <string.h>",
        "#include <stdlib.h>",
        "#include <esp_err.h>",
        "#include <esp_http_server.h>",
    ),
    array_decl="static const unsigned char {name}[{size}] = {{",
    etag_decl='static const char * const etag_{id} = "{hash}";',
    null="NULL",
    manifest_struct=(
        "typedef struct {{",
        "  const char* path;",
        "  uint32_t size;",
        "  uint32_t gzipSize;",
        "  const char* etag;",
        "  const char* contentType;",
        "}} {prefix}_FileInfo;",
    ),
    manifest_open="static const {prefix}_FileInfo {prefix}_FILES[] = {{",
    manifest_count=(
        "static const size_t {prefix}_FILE_COUNT = sizeof({prefix}_FILES) / sizeof({prefix}_FILES[0]);"
    ),
    hook_decl="__attribute__((weak)) void {prefix}_onFileServed(const char* path, int statusCode) {{}}",
    init_open="static inline void {method}(httpd_handle_t server) {{",
    etag_check=(
        'size_t hdr_len = httpd_req_get_hdr_value_len(req, "If-None-Match");',
        "if (hdr_len > 0) {{",
        "    char* hdr_value = malloc(hdr_len + 1);",
        "    if (hdr_value != NULL) {{",
        '        if (httpd_req_get_hdr_value_str(req, "If-None-Match", hdr_value, hdr_len + 1) == ESP_OK',
        "            && strcmp(hdr_value, {etag}) == 0) {{",
        "            free(hdr_value);",
        '            httpd_resp_set_status(req, "304 Not Modified");',
        "            {hook}",
        "            httpd_resp_send(req, NULL, 0);",
        "            return ESP_OK;",
        "        }}",
        "        free(hdr_value);",
        "    }}",
        "}}",
    ),
    response_begin=('httpd_resp_set_type(req, "{mime}");',),
    set_header='httpd_resp_set_hdr(req, "{name}", {value});',
    body=(),
    send=("httpd_resp_send(req, (const char *){array}, {length});", "return ESP_OK;"),
    inline_handlers=False,
    handler_open=("static esp_err_t {handler} (httpd_req_t *req)", "{{"),
    handler_close=("}}",),
    route_table=(
        "static const httpd_uri_t {route} = {{",
        '    .uri = "{uri}",',
        "    .method = HTTP_GET,",
        "    .handler = {handler},",
        "}};",
    ),
    register="    httpd_register_uri_handler(server, &{route});",
    max_uri_handlers_hint=(
        "httpd_config_t config = HTTPD_DEFAULT_CONFIG();\n"
        "  config.max_uri_handlers = {recommended};\n"
        "  httpd_handle_t server = NULL;\n"
        "  httpd_start(&server, &config);\n"
        "  {method}(server);"
    ),
)

ENGINES = {descriptor.name: descriptor for descriptor in (PSYCHIC, PSYCHIC2, ASYNC, ESPIDF)}


def get_engine(engine: Engine | str) -> EngineDescriptor:
    name = engine.value if isinstance(engine, Engine) else engine
    try:
        return ENGINES[name]
    except KeyError:
        raise ConfigError(f"Invalid engine: '{name}' (valid engines: {', '.join(ENGINES)})") from None

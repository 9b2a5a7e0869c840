# naijauni

A small HTTP server that answers lookups of Nigerian universities from a
JSON file. It comes with a client library for the same API. Only the
standard library is used.

## Installing

    pip install .

To run the tests:

    pip install ".[test]"
    pytest

## Data file

The server reads a JSON array of objects. Each object has the keys `name`,
`abbreviation` and `website_link`:

```json
[
  {"name": "University of Lagos", "abbreviation": "UNILAG", "website_link": "https://unilag.example.com"}
]
```

Missing or null fields are read as empty strings. The file is read again on
every request, so edits show up without a restart.

## Running the server

    naijauni-server [--host HOST] [--port PORT] [--data PATH] [--allow-origin ORIGIN]

- `--host`: the address to listen on. The default is all interfaces.
- `--port`: the port to listen on. The default is `8080`.
- `--data`: the JSON file of universities. The default is `json/uni.json`,
  relative to the working directory.
- `--allow-origin`: the value sent in `Access-Control-Allow-Origin`. The
  default is `*`.

The file is read once at startup. If it cannot be read or parsed, the
command prints the error and exits with status 1.

### Endpoints

Every response carries the CORS headers `Access-Control-Allow-Origin`,
`Access-Control-Allow-Methods: GET, POST, OPTIONS` and
`Access-Control-Allow-Headers: Content-Type`. An `OPTIONS` request to any
path gets `200` with an empty body.

| Path | Request | Result |
|------|---------|--------|
| `/` (and any path not listed below) | `GET` | every university as a JSON array |
| `/search` | `GET` with a JSON body `{"name": "..."}` | the university with exactly that name; if there is none, `200` with an empty body |
| `/searchab?abbreviation=...` | `GET` | the university with exactly that abbreviation |

Errors come back as JSON objects of the form `{"message": ..., "code": ...}`:

- `405` for any method other than `GET` (and `OPTIONS`).
- `400` `"Failed to decode request"` when the `/search` body is not valid JSON.
- `400` `"Abbreviation is required"` when `/searchab` has no abbreviation.
- `404` `"University not found"` when no university has that abbreviation.
- `500` `"Failed to load universities"` when the data file cannot be read
  while a request is being handled.

### From Python

```python
from naijauni.server import create_server, find_by_abbreviation, load_universities

universities = load_universities("json/uni.json")
print(find_by_abbreviation(universities, "UNILAG"))

server = create_server("127.0.0.1", 8080, "json/uni.json")
server.serve_forever()
```

`find_by_name` and `find_by_abbreviation` return the first exact match, or
`None` if there is no match. `UniversityRequestHandler` is the request
handler the server uses.

## Using the client

```python
from naijauni.api import DefaultAPI
from naijauni.client import APIClient, APIError
from naijauni.configuration import Configuration

config = Configuration()            # server http://localhost:8080
config.add_default_header("X-Trace", "demo")
api = DefaultAPI(APIClient(config))

universities, response = api.root_get()
for uni in universities:
    print(uni.name, uni.abbreviation, uni.website_link)

try:
    uni, response = api.searchab_get("UNILAG")
    print(uni.to_json())
except APIError as exc:
    print("lookup failed:", exc, exc.body)
```

Each operation returns a pair: the decoded result (a `University`, or a list
of them) and the `HTTPResponse`, which holds `status_code`, `headers` and
`body`. A reply with status 300 or higher raises `APIError`. The error's
message is the status line, and its `body` holds the raw reply. Passing
`None` as the name request or as the abbreviation raises `ValueError`.

`DefaultAPI.search_post` sends a `UniversityNameRequest` as a `POST` to
`/search`. The bundled server accepts only `GET` there, so against that
server the call raises `APIError` with `405 Method Not Allowed`.

### Configuration

`Configuration` holds the following fields: `host`, `scheme`,
`default_header`, `user_agent`, `debug`, `servers`, `operation_servers` and
`http_client`.

- Setting `host` or `scheme` overrides that part of every request URL.
- With `debug` set, requests and responses are written to the
  `naijauni.client` logger.
- `http_client` is any callable that takes a `PreparedRequest` and returns an
  `HTTPResponse`. If it is left unset, `urllib` is used.

A server URL can contain `{name}` placeholders described by a
`ServerVariable`. `format_server_url` and `Configuration.server_url` fill
those placeholders in. A request context is a mapping keyed by `ContextKey`
members, and it can select a server index or supply variable values, either
for all operations or for one operation at a time.

### Other helpers

- `naijauni.models`: `University`, `UniversityNameRequest` and `APIResponse`.
  `UniversityNameRequest.from_json` rejects a body with missing or unknown
  keys.
- `naijauni.nullable`: `Nullable`, which tells a value set to null apart from
  an unset one.
- `naijauni.client`: the request-building and response-decoding functions
  (`prepare_request`, `decode`, `detect_content_type`, `set_body`,
  `add_parameter`), plus `parse_cache_control` and `cache_expires` for
  caching headers.

## What it does not do

- No university data ships with the package. You supply the JSON file.
- The server has no authentication and no TLS. It does not write to the data
  file.
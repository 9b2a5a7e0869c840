import http.client
import json
import threading

import pytest

from naijauni.models import University
from naijauni.server import (
    create_server,
    find_by_abbreviation,
    find_by_name,
    load_universities,
    main,
)

SAMPLE = [
    {
        "name": "Example State University",
        "abbreviation": "ESU",
        "website_link": "https://esu.example.com",
    },
    {
        "name": "Sample Federal University",
        "abbreviation": "SFU",
        "website_link": "https://sfu.example.com",
    },
]


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "uni.json"
    path.write_text(json.dumps(SAMPLE), encoding="utf-8")
    return path


@pytest.fixture
def server(data_file):
    srv = create_server("127.0.0.1", 0, data_file)
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    yield srv
    srv.shutdown()
    srv.server_close()
    thread.join(timeout=5)


def _request(srv, method, target, body=None, headers=None):
    host, port = srv.server_address[:2]
    conn = http.client.HTTPConnection(host, port, timeout=5)
    try:
        conn.request(method, target, body=body, headers=headers or {})
        resp = conn.getresponse()
        return resp.status, resp, resp.read()
    finally:
        conn.close()


def test_load_universities_reads_all_entries(data_file):
    universities = load_universities(data_file)
    assert [u.abbreviation for u in universities] == ["ESU", "SFU"]
    assert universities[0] == University(**SAMPLE[0])


def test_load_universities_fills_missing_fields(tmp_path):
    path = tmp_path / "uni.json"
    path.write_text('[{"name": "Only Name"}, null]', encoding="utf-8")
    universities = load_universities(path)
    assert universities == [
        University(name="Only Name", abbreviation="", website_link=""),
        University(name="", abbreviation="", website_link=""),
    ]


def test_load_universities_rejects_non_array(tmp_path):
    path = tmp_path / "uni.json"
    path.write_text('{"name": "x"}', encoding="utf-8")
    with pytest.raises(ValueError):
        load_universities(path)


def test_load_universities_rejects_bad_json(tmp_path):
    path = tmp_path / "uni.json"
    path.write_text("[", encoding="utf-8")
    with pytest.raises(ValueError):
        load_universities(path)


def test_load_universities_missing_file(tmp_path):
    with pytest.raises(OSError):
        load_universities(tmp_path / "absent.json")


def test_find_by_name_and_abbreviation(data_file):
    universities = load_universities(data_file)
    assert find_by_name(universities, "Sample Federal University").abbreviation == "SFU"
    assert find_by_abbreviation(universities, "ESU").name == "Example State University"
    assert find_by_name(universities, "esu") is None
    assert find_by_abbreviation(universities, "esu") is None


def test_list_all(server):
    status, resp, body = _request(server, "GET", "/")
    assert status == 200
    assert resp.getheader("Content-Type") == "application/json"
    assert resp.getheader("Access-Control-Allow-Methods") == "GET, POST, OPTIONS"
    assert json.loads(body) == SAMPLE


def test_unknown_path_lists_all(server):
    status, _, body = _request(server, "GET", "/anything")
    assert status == 200
    assert json.loads(body) == SAMPLE


def test_list_all_rejects_post(server):
    status, _, body = _request(server, "POST", "/")
    assert status == 405
    assert json.loads(body) == {"message": "Invalid request method", "code": 405}


def test_options_preflight(server):
    status, resp, body = _request(server, "OPTIONS", "/searchab")
    assert status == 200
    assert body == b""
    assert resp.getheader("Access-Control-Allow-Headers") == "Content-Type"


def test_search_by_name(server):
    payload = json.dumps({"name": "Example State University"})
    status, _, body = _request(
        server, "GET", "/search", body=payload, headers={"Content-Type": "application/json"}
    )
    assert status == 200
    assert json.loads(body) == SAMPLE[0]


def test_search_by_name_key_is_case_insensitive(server):
    payload = json.dumps({"NAME": "Sample Federal University", "extra": 1})
    status, _, body = _request(server, "GET", "/search", body=payload)
    assert status == 200
    assert json.loads(body) == SAMPLE[1]


def test_search_by_name_not_found_is_empty(server):
    status, _, body = _request(server, "GET", "/search", body='{"name": "Nowhere"}')
    assert status == 200
    assert body == b""


@pytest.mark.parametrize("payload", ["", "not json", '{"name": 5}', "[1, 2]"])
def test_search_bad_body(server, payload):
    status, _, body = _request(server, "GET", "/search", body=payload)
    assert status == 400
    assert json.loads(body) == {"message": "Failed to decode request", "code": 400}


def test_search_rejects_post(server):
    status, _, body = _request(server, "POST", "/search", body='{"name": "x"}')
    assert status == 405
    assert json.loads(body)["message"] == "Invalid request method"


def test_search_by_abbreviation(server):
    status, _, body = _request(server, "GET", "/searchab?abbreviation=SFU")
    assert status == 200
    assert json.loads(body) == SAMPLE[1]


def test_search_by_abbreviation_required(server):
    status, _, body = _request(server, "GET", "/searchab")
    assert status == 400
    assert json.loads(body) == {"message": "Abbreviation is required", "code": 400}


def test_search_by_abbreviation_not_found(server):
    status, _, body = _request(server, "GET", "/searchab?abbreviation=ZZZ")
    assert status == 404
    assert json.loads(body) == {"message": "University not found", "code": 404}


def test_search_by_abbreviation_rejects_post(server):
    status, _, body = _request(server, "POST", "/searchab?abbreviation=ESU")
    assert status == 405
    assert json.loads(body) == {"message": "Method not allowed", "code": 405}


def test_html_characters_are_escaped(tmp_path):
    path = tmp_path / "uni.json"
    path.write_text(json.dumps([{"name": "A<B", "abbreviation": "AB"}]), encoding="utf-8")
    srv = create_server("127.0.0.1", 0, path)
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    try:
        status, _, body = _request(srv, "GET", "/searchab?abbreviation=AB")
    finally:
        srv.shutdown()
        srv.server_close()
    assert status == 200
    assert b"\\u003c" in body
    assert json.loads(body)["name"] == "A<B"


def test_main_fails_without_data(tmp_path, capsys):
    assert main(["--data", str(tmp_path / "missing.json"), "--port", "0"]) == 1
    assert "an error occurred" in capsys.readouterr().err
import pytest

from naijauni.configuration import (
    Configuration,
    ContextKey,
    ServerConfiguration,
    ServerVariable,
    format_server_url,
)


@pytest.fixture
def templated_servers():
    return [
        ServerConfiguration(
            url="http://{host}/api",
            description="templated",
            variables={
                "host": ServerVariable(
                    description="host name",
                    default_value="default.example.com",
                    enum_values=["default.example.com", "other.example.com"],
                )
            },
        ),
        ServerConfiguration(url="http://second.example.com", description="second"),
    ]


def test_default_configuration_points_at_localhost():
    cfg = Configuration()
    assert cfg.server_url(0, None) == "http://localhost:8080"
    assert cfg.servers[0].description == "No description provided"
    assert cfg.debug is False
    assert cfg.default_header == {}


def test_add_default_header():
    cfg = Configuration()
    cfg.add_default_header("X-Trace", "abc")
    assert cfg.default_header == {"X-Trace": "abc"}


def test_context_key_string():
    key = ContextKey("serverIndex")
    assert key is ContextKey.SERVER_INDEX
    assert str(key) == "auth serverIndex"
    cfg = Configuration()
    assert cfg.server_url_with_context({key: 0}, "Op") == "http://localhost:8080"


def test_default_variable_is_used(templated_servers):
    url = format_server_url(templated_servers, 0, None)
    assert url == "http://default.example.com/api"


def test_allowed_variable_is_substituted(templated_servers):
    url = format_server_url(templated_servers, 0, {"host": "other.example.com"})
    assert "{host}" not in url
    assert "other.example.com" in url


def test_disallowed_variable_raises(templated_servers):
    with pytest.raises(ValueError, match="invalid value"):
        format_server_url(templated_servers, 0, {"host": "bad.example.com"})


def test_variable_without_enum_accepts_anything():
    servers = [
        ServerConfiguration(
            url="http://{host}",
            variables={"host": ServerVariable(default_value="a.example.com")},
        )
    ]
    assert format_server_url(servers, 0, {"host": "b.example.com"}) == "http://b.example.com"


@pytest.mark.parametrize("index", [-1, 2, 10])
def test_index_out_of_range(templated_servers, index):
    with pytest.raises(IndexError, match="out of range 1"):
        format_server_url(templated_servers, index, None)


def test_context_none_uses_first_server(templated_servers):
    cfg = Configuration(servers=templated_servers)
    assert cfg.server_url_with_context(None, "Op") == format_server_url(
        templated_servers, 0, None
    )


def test_context_server_index(templated_servers):
    cfg = Configuration(servers=templated_servers)
    context = {ContextKey.SERVER_INDEX: 1}
    assert cfg.server_url_with_context(context, "Op") == templated_servers[1].url


def test_context_operation_index_overrides_server_index(templated_servers):
    cfg = Configuration(servers=templated_servers)
    context = {
        ContextKey.SERVER_INDEX: 0,
        ContextKey.OPERATION_SERVER_INDICES: {"Op": 1},
    }
    assert cfg.server_url_with_context(context, "Op") == templated_servers[1].url
    assert cfg.server_url_with_context(context, "Other") == cfg.server_url(0, None)


def test_context_variables(templated_servers):
    cfg = Configuration(servers=templated_servers)
    variables = {"host": "other.example.com"}
    context = {ContextKey.SERVER_VARIABLES: variables}
    assert cfg.server_url_with_context(context, "Op") == cfg.server_url(0, variables)


def test_context_operation_variables(templated_servers):
    cfg = Configuration(servers=templated_servers)
    op_vars = {"host": "other.example.com"}
    context = {
        ContextKey.SERVER_VARIABLES: {"host": "default.example.com"},
        ContextKey.OPERATION_SERVER_VARIABLES: {"Op": op_vars},
    }
    assert cfg.server_url_with_context(context, "Op") == cfg.server_url(0, op_vars)
    assert cfg.server_url_with_context(context, "Other") == cfg.server_url(0, None)


def test_operation_servers_take_precedence(templated_servers):
    special = [ServerConfiguration(url="http://special.example.com")]
    cfg = Configuration(servers=templated_servers, operation_servers={"Op": special})
    assert cfg.server_url_with_context({}, "Op") == special[0].url
    assert cfg.server_url_with_context({}, "Other") == cfg.server_url(0, None)


@pytest.mark.parametrize(
    "context",
    [
        {ContextKey.SERVER_INDEX: "1"},
        {ContextKey.SERVER_INDEX: True},
        {ContextKey.OPERATION_SERVER_INDICES: [1]},
        {ContextKey.SERVER_VARIABLES: "host"},
        {ContextKey.OPERATION_SERVER_VARIABLES: 3},
    ],
)
def test_context_with_wrong_types_raises(context):
    with pytest.raises(TypeError):
        Configuration().server_url_with_context(context, "Op")
"""End-to-end tests for discovery and route registration."""

import pytest

from smartloader import BaseLoader, Loader, RouterAdapter, RouteTable

USER_CONTROLLER = """
from smartloader import GET, PATCH, controller


@controller()
class User:
    @GET()
    def info(self, ctx):
        return ("info", ctx, self)

    @PATCH()
    def updateInfo(self, ctx):
        return ("updated", ctx, self)
"""

DASHBOARD_CONTROLLER = """
from smartloader import GET, controller


@controller(prefix="/v2")
class Dashboard:
    @GET("/dashboard")
    def index(self, ctx):
        return "dashboard"

    @GET()
    def stats(self, ctx):
        return "stats"
"""


def _load(root, **options):
    table = RouteTable()
    infos = Loader(table, **options).load(str(root))
    return table, infos


def test_convention_paths_follow_file_location(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)

    table, _ = _load(tmp_path / "api")

    assert table.pairs() == [("GET", "/user/info"), ("PATCH", "/user/updateInfo")]


def test_registered_handler_is_bound_to_one_controller_instance(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)

    table, infos = _load(tmp_path / "api")

    (info,) = infos
    get_route = table.find("get", "/user/info")
    patch_route = table.find("PATCH", "/user/updateInfo")
    assert get_route.handlers == (get_route.handler,)
    assert get_route.handler("ctx") == ("info", "ctx", info.instance)
    assert patch_route.handler("ctx")[2] is info.instance


def test_prefix_composes_with_explicit_paths_only(tmp_path, write_module):
    write_module("api/admin/dashboard.py", DASHBOARD_CONTROLLER)

    table, _ = _load(tmp_path / "api")

    assert table.pairs() == [("GET", "/v2/dashboard"), ("GET", "/admin/dashboard/stats")]


def test_explicit_path_without_prefix_is_verbatim(tmp_path, write_module):
    write_module(
        "api/user.py",
        """
        from smartloader import GET, controller


        @controller()
        class User:
            @GET("user//info/")
            def info(self, ctx):
                return "info"

            @GET("")
            def empty(self, ctx):
                return "empty"
        """,
    )

    table, _ = _load(tmp_path / "api")

    assert table.pairs() == [("GET", "user//info/"), ("GET", "/user/empty")]


def test_prefix_join_normalizes_slashes(tmp_path, write_module):
    write_module(
        "api/shop.py",
        """
        from smartloader import GET, controller


        @controller(prefix="/shop/")
        class Shop:
            @GET("/items/../cart")
            def cart(self, ctx):
                return "cart"
        """,
    )

    table, _ = _load(tmp_path / "api")

    assert table.pairs() == [("GET", "/shop/cart")]


def test_registration_order_and_rerun_are_stable(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)
    write_module("api/admin/dashboard.py", DASHBOARD_CONTROLLER)

    first, _ = _load(tmp_path / "api")
    second, _ = _load(tmp_path / "api")

    assert first.pairs() == second.pairs() == [
        ("GET", "/v2/dashboard"),
        ("GET", "/admin/dashboard/stats"),
        ("GET", "/user/info"),
        ("PATCH", "/user/updateInfo"),
    ]


BARE_CONTROLLER = """
from smartloader import GET


class Bare:
    @GET("/bare")
    def ping(self, ctx):
        return "pong"
"""


def test_require_controller_decorator_skips_bare_classes(tmp_path, write_module):
    write_module("api/bare.py", BARE_CONTROLLER)

    table, infos = _load(tmp_path / "api", require_controller_decorator=True)

    assert table.pairs() == []
    assert infos == []


def test_bare_classes_use_empty_options_by_default(tmp_path, write_module):
    write_module("api/bare.py", BARE_CONTROLLER)

    table, infos = _load(tmp_path / "api")

    assert table.pairs() == [("GET", "/bare")]
    assert infos[0].options == {}


def test_controllers_without_actions_and_plain_modules_are_skipped(tmp_path, write_module):
    write_module(
        "api/empty.py",
        """
        from smartloader import controller


        @controller(prefix="/empty")
        class Empty:
            def helper(self):
                return None
        """,
    )
    write_module("api/util.py", "VALUE = 1\n")
    write_module("api/__init__.py", "")

    table, infos = _load(tmp_path / "api")

    assert table.pairs() == []
    assert infos == []


def test_construction_options_reach_every_controller(tmp_path, write_module):
    write_module(
        "api/config.py",
        """
        from smartloader import GET, controller


        @controller()
        class Config:
            def __init__(self, options):
                self.options = options

            @GET()
            def show(self, ctx):
                return self.options
        """,
    )

    table, infos = _load(tmp_path / "api", controller_construction_options={"env": "test"})

    assert infos[0].instance.options == {"env": "test"}
    assert table.routes[0].handler(None) == {"env": "test"}


def test_instantiate_returning_none_opts_out(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)
    write_module("api/admin/dashboard.py", DASHBOARD_CONTROLLER)

    def instantiate(cls, options):
        return None if cls.__name__ == "User" else cls()

    table, infos = _load(tmp_path / "api", instantiate=instantiate)

    assert [info.class_name for info in infos] == ["Dashboard"]
    assert all(path.startswith("/v2") or path.startswith("/admin") for _, path in table.pairs())


def test_filter_actions_hook_selects_subset(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)
    seen = []

    def filter_actions(actions, controller):
        seen.append(type(controller).__name__)
        return [action for action in actions if action.method != "GET"]

    table, infos = _load(tmp_path / "api", filter_actions=filter_actions)

    assert seen == ["User"]
    assert table.pairs() == [("PATCH", "/user/updateInfo")]
    assert [action.name for action in infos[0].actions] == ["updateInfo"]


def test_collector_veto_is_isolated(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)
    write_module("api/admin/dashboard.py", DASHBOARD_CONTROLLER)
    later_calls = []

    def deny_update(controller, action, middleware):
        return action.name != "updateInfo"

    def record(controller, action, middleware):
        later_calls.append(action.name)
        return True

    loader = Loader(RouteTable(), collectors=[deny_update, record])
    loader.load(str(tmp_path / "api"))

    assert loader.router.pairs() == [
        ("GET", "/v2/dashboard"),
        ("GET", "/admin/dashboard/stats"),
        ("GET", "/user/info"),
    ]
    assert "updateInfo" not in later_calls


def test_collectors_build_chain_in_order(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)

    def auth(ctx):
        return "auth"

    def audit(ctx):
        return "audit"

    loader = Loader(RouteTable())
    loader.add_middleware_collector(lambda c, a, m: m.append(auth) or True)
    loader.add_middleware_collector(lambda c, a, m: m.append(audit) or True)
    loader.load(str(tmp_path / "api"))

    route = loader.router.find("GET", "/user/info")
    assert route.handlers[:2] == (auth, audit)
    assert route.handler("ctx")[0] == "info"


def test_normalize_middleware_runs_before_handler_is_appended(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)
    received = []

    def first(ctx):
        return 1

    def second(ctx):
        return 2

    def normalize(middleware):
        received.append(list(middleware))
        return list(reversed(middleware))

    loader = Loader(RouteTable(), normalize_middleware=normalize)
    loader.add_middleware_collector(lambda c, a, m: m.extend([first, second]) or True)
    loader.load(str(tmp_path / "api"))

    assert received[0] == [first, second]
    route = loader.router.find("GET", "/user/info")
    assert route.handlers[:2] == (second, first)
    assert route.handler("x")[0] == "info"


def test_ensure_path_and_register_route_are_overridable(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)
    registered = []

    def ensure_path(*, action, file, class_name, controller_options):
        return f"/{class_name.lower()}/{file.basename}/{action.name.lower()}"

    def register_route(*, action, path, middleware, controller_name, controller_options):
        registered.append((action.method, path, controller_name, len(middleware)))

    BaseLoader(ensure_path=ensure_path, register_route=register_route).load(
        str(tmp_path / "api")
    )

    assert registered == [
        ("GET", "/user/user/info", "User", 1),
        ("PATCH", "/user/user/updateinfo", "User", 1),
    ]


def test_subclass_overrides_default_hooks(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)

    class VersionedLoader(Loader):
        def ensure_path(self, *, action, file, class_name, controller_options):
            return "/api" + super().ensure_path(
                action=action,
                file=file,
                class_name=class_name,
                controller_options=controller_options,
            )

    loader = VersionedLoader()
    loader.load(str(tmp_path / "api"))

    assert loader.router.pairs() == [("GET", "/api/user/info"), ("PATCH", "/api/user/updateInfo")]


def test_process_action_returns_path_or_none(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)
    outcomes = []

    class TracingLoader(Loader):
        def process_action(self, action, info):
            outcomes.append(super().process_action(action, info))
            return outcomes[-1]

    loader = TracingLoader(collectors=[lambda c, a, m: a.name == "info"])
    loader.load(str(tmp_path / "api"))

    assert outcomes == ["/user/info", None]


def test_router_without_verb_fails_loudly(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)

    class GetOnlyRouter:
        def __init__(self):
            self.paths = []

        def get(self, path, *handlers):
            self.paths.append(path)

    router = GetOnlyRouter()
    with pytest.raises(AttributeError):
        Loader(router).load(str(tmp_path / "api"))
    assert router.paths == ["/user/info"]


def test_missing_root_aborts_load(tmp_path):
    with pytest.raises(FileNotFoundError):
        Loader().load(str(tmp_path / "missing"))


def test_import_failure_aborts_load(tmp_path, write_module):
    write_module("api/a_user.py", USER_CONTROLLER)
    write_module("api/b_broken.py", "raise ImportError('missing dependency')\n")

    with pytest.raises(ImportError):
        Loader().load(str(tmp_path / "api"))


def test_relative_root_resolves_against_cwd(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)

    loader = Loader(cwd=str(tmp_path))
    infos = loader.load("api")

    assert infos[0].file.dirname == ""
    assert loader.router.pairs()[0] == ("GET", "/user/info")


def test_pattern_file_filter(tmp_path, write_module):
    write_module("api/user.py", USER_CONTROLLER)
    write_module("api/admin/dashboard.py", DASHBOARD_CONTROLLER)

    table, _ = _load(tmp_path / "api", file_filter=r"/admin/[^/]+\.py$")

    assert [path for _, path in table.pairs()] == ["/v2/dashboard", "/admin/dashboard/stats"]


def test_custom_extension(tmp_path, write_module):
    write_module("api/user.ctrl.py", USER_CONTROLLER)

    table, _ = _load(tmp_path / "api", extension=".ctrl.py")

    assert table.pairs()[0] == ("GET", "/user/info")


def test_unknown_options_and_bad_hooks_are_rejected():
    with pytest.raises(TypeError):
        Loader(prefix="/api")
    with pytest.raises(TypeError):
        Loader(ensure_path="not callable")
    with pytest.raises(TypeError):
        Loader().add_middleware_collector("nope")


def test_default_router_and_adapter_passthrough():
    table = RouteTable()
    adapter = RouterAdapter(table)

    assert isinstance(Loader().router, RouteTable)
    loader = Loader(adapter)
    assert loader.adapter is adapter
    assert loader.router is table


def test_join_path_rules():
    from smartloader.core import join_path

    assert join_path("/", "", "user", "info") == "/user/info"
    assert join_path("/v2/", "/dashboard") == "/v2/dashboard"
    assert join_path("/api", "items/") == "/api/items/"
    assert join_path("/a", "./b", "../c") == "/a/c"
    assert join_path() == "."


def test_controllers_import_siblings_relatively(tmp_path, write_module):
    write_module("api/_helpers.py", 'GREETING = "hello"\n')
    write_module(
        "api/user.py",
        """
        from smartloader import GET, controller

        from ._helpers import GREETING


        @controller()
        class User:
            @GET()
            def greet(self, ctx):
                return GREETING
        """,
    )
    write_module(
        "api/admin/dashboard.py",
        """
        from smartloader import GET, controller

        from .._helpers import GREETING


        @controller()
        class Dashboard:
            @GET()
            def greet(self, ctx):
                return GREETING + " admin"
        """,
    )

    table, _ = _load(tmp_path / "api")

    assert table.find("GET", "/admin/dashboard/greet").handler(None) == "hello admin"
    assert table.find("GET", "/user/greet").handler(None) == "hello"


def test_similar_file_names_load_as_separate_modules(tmp_path, write_module):
    for name in ("user-info", "user_info"):
        write_module(
            f"api/{name}.py",
            f"""
            from smartloader import GET, controller


            @controller()
            class Info:
                @GET()
                def show(self, ctx):
                    return "{name}"
            """,
        )

    first, _ = _load(tmp_path / "api")
    second, _ = _load(tmp_path / "api")

    assert first.pairs() == [("GET", "/user-info/show"), ("GET", "/user_info/show")]
    assert first.find("GET", "/user-info/show").handler(None) == "user-info"
    assert first.find("GET", "/user_info/show").handler(None) == "user_info"
    assert type(first.routes[0].handler.__self__) is not type(first.routes[1].handler.__self__)
    assert type(second.routes[0].handler.__self__) is type(first.routes[0].handler.__self__)

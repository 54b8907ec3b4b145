import json
import tempfile
import unittest
from pathlib import Path

from layered_options.binder import bind
from layered_options.errors import SourceLoadError
from layered_options.loader import LayeredConfigLoader, resolve_environment
from layered_options.models import ConfigLoadRequest
from layered_options.schema import OptionsSchema, option


class LayeredConfigLoaderTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name)
        (self.base / "appsettings.json").write_text(
            json.dumps(
                {
                    "Greeting": "from-file",
                    "Source": "base",
                    "Db": {"Host": "file-host", "Port": 1000},
                    "Only": {"InBase": "yes"},
                }
            ),
            encoding="utf-8",
        )
        (self.base / "appsettings.Development.json").write_text(
            json.dumps({"Source": "development", "Db": {"Port": 2000}}),
            encoding="utf-8",
        )
        (self.base / ".env").write_text("APP_Db__Host=dotenv-host\nAPP_Db__User=dotenv-user\n", encoding="utf-8")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _request(self, **kwargs) -> ConfigLoadRequest:
        defaults = dict(base_dir=str(self.base), env_prefix="APP_", environ={})
        defaults.update(kwargs)
        return ConfigLoadRequest(**defaults)

    def test_default_layering_order(self) -> None:
        loaded = LayeredConfigLoader().load(
            self._request(
                environment="Development",
                environ={"APP_Db__User": "env-user", "APP_Greeting": "from-env", "UNRELATED": "x"},
                args=["--Greeting=from-args"],
                overrides={"Db": {"Port": 9999}},
            )
        )
        view = loaded.view
        self.assertEqual(loaded.environment, "Development")
        self.assertEqual(view.get("Only:InBase"), "yes")
        self.assertEqual(view.get("Source"), "development")
        self.assertEqual(view.get("Db:Host"), "dotenv-host")
        self.assertEqual(view.get("Db:User"), "env-user")
        self.assertEqual(view.get("Greeting"), "from-args")
        self.assertEqual(view.get("Db:Port"), "9999")
        self.assertNotIn("UNRELATED", view)

        self.assertEqual(view.entry("Source").origin, "appsettings.Development.json")
        self.assertEqual(view.entry("Db:User").origin, "environment")
        self.assertEqual(view.entry("Greeting").origin, "command-line")
        self.assertEqual(view.entry("Db:Port").origin, "overrides")

    def test_environment_from_variable_and_default(self) -> None:
        self.assertEqual(resolve_environment(self._request(environ={"APP_ENVIRONMENT": "Staging"})), "Staging")
        self.assertEqual(resolve_environment(self._request()), "Production")
        self.assertEqual(resolve_environment(self._request(environment="Test")), "Test")

    def test_missing_environment_file_is_optional(self) -> None:
        view = LayeredConfigLoader().load(self._request(environment="Production")).view
        self.assertEqual(view.get("Source"), "base")

    def test_dotenv_can_be_disabled(self) -> None:
        view = LayeredConfigLoader().load(self._request(dotenv_path=None)).view
        self.assertEqual(view.get("Db:Host"), "file-host")
        self.assertIsNone(view.get("Db:User"))

    def test_required_file(self) -> None:
        (self.base / "appsettings.json").unlink()
        with self.assertRaises(SourceLoadError):
            LayeredConfigLoader().load(self._request(require_file=True))
        view = LayeredConfigLoader().load(self._request()).view
        self.assertIsNone(view.get("Greeting"))

    def test_sources_are_registered_in_layering_order(self) -> None:
        registry = LayeredConfigLoader().build_registry(
            self._request(environment="Development", args=["--a=1"], overrides={"b": "2"})
        )
        self.assertEqual(
            [source.name for source in registry.sources],
            [
                "appsettings.json",
                "appsettings.Development.json",
                ".env",
                "environment",
                "command-line",
                "overrides",
            ],
        )

    def test_binding_a_loaded_section(self) -> None:
        schema = OptionsSchema(name="Db", fields=(option("Host", "str", "localhost"), option("Port", "int", 5432)))
        loaded = LayeredConfigLoader().load(self._request(environment="Development"))
        bound = bind(loaded.view, "Db", schema)
        self.assertEqual(bound.to_dict(), {"Host": "dotenv-host", "Port": 2000})


if __name__ == "__main__":
    unittest.main()

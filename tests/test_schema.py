import unittest
from typing import Literal, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from layered_options.errors import SchemaError
from layered_options.models import LoggingSettings
from layered_options.schema import FieldSpec, OptionsSchema, list_of, map_of, option, section


class FieldSpecTests(unittest.TestCase):
    def test_invalid_declarations(self) -> None:
        with self.assertRaises(SchemaError):
            FieldSpec(name="", kind="str")
        with self.assertRaises(SchemaError):
            FieldSpec(name="a:b", kind="str")
        with self.assertRaises(SchemaError):
            FieldSpec(name="a", kind="decimal")  # type: ignore[arg-type]
        with self.assertRaises(SchemaError):
            FieldSpec(name="a", kind="section")
        with self.assertRaises(SchemaError):
            FieldSpec(name="a", kind="list", of="complex")
        with self.assertRaises(SchemaError):
            FieldSpec(name="a", kind="int", of="int")

    def test_duplicate_field_names_are_rejected_case_insensitively(self) -> None:
        with self.assertRaises(SchemaError):
            OptionsSchema(name="S", fields=(option("Name", "str"), option("name", "str")))

    def test_container_defaults_are_normalized(self) -> None:
        self.assertEqual(list_of("L", "int").default, ())
        self.assertEqual(list_of("L", "int", default=[1, 2]).default, (1, 2))
        self.assertEqual(map_of("M", "str").default, {})

    def test_defaults_and_field_lookup(self) -> None:
        schema = OptionsSchema(
            name="S",
            fields=[
                option("A", "int", 1),
                section("B", OptionsSchema(name="B", fields=(option("C", "bool", True),))),
                list_of("D", "str", default=("x",)),
            ],
        )
        self.assertIsInstance(schema.fields, tuple)
        self.assertEqual(schema.defaults(), {"A": 1, "B": {"C": True}, "D": ["x"]})
        self.assertEqual(schema.field("a").name, "A")
        with self.assertRaises(KeyError):
            schema.field("missing")


class Child(BaseModel):
    enabled: bool = True


class Sample(BaseModel):
    title: str = "t"
    retries: int = 3
    mode: Literal["fast", "slow"] = "fast"
    threshold: Optional[float] = None
    child: Child = Field(default_factory=Child)
    children: Sequence[Child] = ()
    names: Tuple[str, ...] = ("a",)
    weights: Mapping[str, float] = Field(default_factory=lambda: {"x": 1.0})
    aliased: str = Field(default="v", alias="AliasName")


class FromModelTests(unittest.TestCase):
    def test_kinds_are_derived_from_annotations(self) -> None:
        schema = OptionsSchema.from_model(Sample)
        kinds = {spec.name: spec.kind for spec in schema.fields}
        self.assertEqual(
            kinds,
            {
                "title": "str",
                "retries": "int",
                "mode": "str",
                "threshold": "float",
                "child": "section",
                "children": "list",
                "names": "list",
                "weights": "map",
                "AliasName": "str",
            },
        )
        self.assertIsInstance(schema.field("children").of, OptionsSchema)
        self.assertEqual(schema.field("names").of, "str")
        self.assertEqual(schema.field("weights").of, "float")
        self.assertEqual(schema.field("weights").default, {"x": 1.0})

    def test_nested_model_defaults_are_kept(self) -> None:
        class Holder(BaseModel):
            child: Child = Child(enabled=False)
            spare: Optional[Child] = None

        schema = OptionsSchema.from_model(Holder)
        self.assertEqual(schema.field("child").default, {"enabled": False})
        self.assertFalse(schema.field("child").nullable)
        self.assertTrue(schema.field("spare").nullable)
        self.assertEqual(schema.defaults(), {"child": {"enabled": False}, "spare": None})

    def test_required_fields_are_rejected(self) -> None:
        class NeedsValue(BaseModel):
            token: str

        with self.assertRaises(SchemaError):
            OptionsSchema.from_model(NeedsValue)

    def test_unsupported_annotation(self) -> None:
        class Odd(BaseModel):
            value: bytes = b""

        with self.assertRaises(SchemaError):
            OptionsSchema.from_model(Odd)

    def test_logging_settings_schema(self) -> None:
        schema = OptionsSchema.from_model(LoggingSettings)
        self.assertEqual(
            schema.defaults(),
            {
                "level": "WARNING",
                "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
                "file": {"enabled": False, "path": "logs/layered-options.log", "rotation": {"backup_count": 5}},
            },
        )


class FromMappingTests(unittest.TestCase):
    def test_shorthand_and_full_forms(self) -> None:
        schema = OptionsSchema.from_mapping(
            {
                "Name": "str",
                "Port": {"type": "int", "default": 8080},
                "Tls": {"type": "section", "fields": {"Enabled": {"type": "bool", "default": False}}},
                "Hosts": {"type": "list", "of": "str", "default": ["localhost"]},
                "Routes": {"type": "map", "fields": {"Target": "str"}},
            },
            name="server",
        )
        self.assertEqual(schema.name, "server")
        self.assertEqual(
            schema.defaults(),
            {"Name": None, "Port": 8080, "Tls": {"Enabled": False}, "Hosts": ["localhost"], "Routes": {}},
        )
        self.assertIsInstance(schema.field("Routes").of, OptionsSchema)

    def test_invalid_mappings(self) -> None:
        with self.assertRaises(SchemaError):
            OptionsSchema.from_mapping(["not", "a", "mapping"])  # type: ignore[arg-type]
        with self.assertRaises(SchemaError):
            OptionsSchema.from_mapping({"A": {"type": "section"}})
        with self.assertRaises(SchemaError):
            OptionsSchema.from_mapping({"A": {"type": "uuid"}})
        with self.assertRaises(SchemaError):
            OptionsSchema.from_mapping({"A": 5})

    def test_container_defaults_must_match_their_kind(self) -> None:
        with self.assertRaises(SchemaError):
            OptionsSchema.from_mapping({"Hosts": {"type": "list", "default": "abc"}})
        with self.assertRaises(SchemaError):
            OptionsSchema.from_mapping({"Routes": {"type": "map", "default": ["a"]}})
        with self.assertRaises(SchemaError):
            OptionsSchema.from_mapping(
                {"Tls": {"type": "section", "default": "on", "fields": {"Enabled": "bool"}}}
            )

    def test_section_default_and_nullable(self) -> None:
        schema = OptionsSchema.from_mapping(
            {
                "Tls": {
                    "type": "section",
                    "default": {"enabled": True},
                    "fields": {"Enabled": {"type": "bool", "default": False}},
                },
                "Proxy": {"type": "section", "nullable": True, "fields": {"Url": "str"}},
            }
        )
        self.assertEqual(schema.defaults(), {"Tls": {"Enabled": True}, "Proxy": None})


if __name__ == "__main__":
    unittest.main()

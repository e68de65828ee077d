import os
import tempfile
import textwrap
import unittest
from pathlib import Path
from unittest.mock import patch

from rr_mcp.manifest import ManifestError, load_manifest


class TestDefaultManifest(unittest.TestCase):
    def test_declares_both_tools(self):
        manifest = load_manifest()
        tools = manifest.tool_table()
        self.assertEqual(sorted(tools), ["get_data", "get_interfaces"])

        data = tools["get_data"]
        self.assertEqual(data.script_name, "GetDataPwsh.ps1")
        self.assertEqual(data.script_folder, "Scripts")
        self.assertEqual(data.default_argument, "MySolution.sln")
        self.assertEqual(data.parameter_name, "solutionFile")

        interfaces = tools["get_interfaces"]
        self.assertEqual(interfaces.script_name, "GetInterfacesPwsh.ps1")
        self.assertIn("OpenAPI", interfaces.description)

    def test_server_identity(self):
        manifest = load_manifest()
        self.assertEqual(manifest.name, "rr-mcp")
        self.assertTrue(manifest.version)


class TestInvalidManifest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "manifest.yaml"

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, text: str) -> Path:
        self.path.write_text(textwrap.dedent(text), encoding="utf-8")
        return self.path

    def test_not_a_mapping(self):
        with self.assertRaises(ManifestError):
            load_manifest(self._write("- just\n- a list\n"))

    def test_missing_version(self):
        with self.assertRaises(ManifestError):
            load_manifest(self._write("name: rr-mcp\ntools: []\n"))

    def test_tool_without_script(self):
        path = self._write("""
            name: rr-mcp
            version: "1"
            tools:
              - name: get_data
                folder: Scripts
        """)
        with self.assertRaisesRegex(ManifestError, "script"):
            load_manifest(path)

    def test_duplicate_tools(self):
        path = self._write("""
            name: rr-mcp
            version: "1"
            tools:
              - {name: a, script: A.ps1, folder: Scripts}
              - {name: a, script: B.ps1, folder: Scripts}
        """)
        with self.assertRaisesRegex(ManifestError, "Duplicate"):
            load_manifest(path)

    def test_missing_file(self):
        with self.assertRaises(ManifestError):
            load_manifest(Path(self._tmp.name) / "nope.yaml")

    def test_environment_override(self):
        path = self._write("""
            name: custom
            version: "2"
            tools:
              - name: only
                script: Only.ps1
                folder: Other
                parameter: {default: Other.sln}
        """)
        with patch.dict(os.environ, {"RR_MCP_MANIFEST": str(path)}):
            manifest = load_manifest()
        self.assertEqual(manifest.name, "custom")
        self.assertEqual(manifest.tools[0].default_argument, "Other.sln")


if __name__ == "__main__":
    unittest.main()

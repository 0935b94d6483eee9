import json
import uuid
import unittest
from pathlib import Path

from maf_stream.config import ParseConfig
from maf_stream.mcp_stdio_server import handle_message
from maf_stream.tools import ToolDispatcher


class TestMcpStdioServer(unittest.TestCase):
    def setUp(self) -> None:
        self.dispatcher = ToolDispatcher(ParseConfig(trace=False, max_items=None, max_text_bytes=1024))

    def test_initialize(self) -> None:
        resp = handle_message(self.dispatcher, {"jsonrpc": "2.0", "id": 1, "method": "initialize"})
        self.assertEqual(resp["id"], 1)
        self.assertIn("tools", resp["result"]["capabilities"])

    def test_tools_call(self) -> None:
        msg = {
            "jsonrpc": "2.0",
            "id": 2,
            "method": "tools/call",
            "params": {"name": "maf.summary", "arguments": {"text": "a\ns chr1 0 1 + 1 A\n"}},
        }
        resp = handle_message(self.dispatcher, msg)
        payload = json.loads(resp["result"]["content"][0]["text"])
        self.assertEqual(payload["blocks"], 1)
        self.assertEqual(payload["sequences"], 1)

    def test_tool_error_is_reported(self) -> None:
        msg = {"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": {"name": "maf.parse", "arguments": {}}}
        resp = handle_message(self.dispatcher, msg)
        self.assertTrue(resp["result"]["isError"])

    def test_non_utf8_input_encodes_cleanly(self) -> None:
        base = Path(__file__).resolve().parent / "_tmp"
        base.mkdir(parents=True, exist_ok=True)
        path = base / f"stdio_{uuid.uuid4().hex}.maf"
        path.write_bytes(b"a score=\xfe\ns chr\xff 0 1 + 1 A\n\n")
        msg = {
            "jsonrpc": "2.0",
            "id": 5,
            "method": "tools/call",
            "params": {"name": "maf.parse", "arguments": {"path": str(path)}},
        }
        try:
            resp = handle_message(self.dispatcher, msg)
        finally:
            path.unlink()
        json.dumps(resp, ensure_ascii=False).encode("utf-8")
        payload = json.loads(resp["result"]["content"][0]["text"])
        self.assertEqual(payload["items"][0]["header"], "a score=�")
        self.assertEqual(payload["items"][0]["sequences"][0]["name"], "chr�")

    def test_unexpected_tool_failure_is_reported(self) -> None:
        class _Broken:
            def call_tool(self, name, arguments):
                raise RuntimeError("boom")

        msg = {"jsonrpc": "2.0", "id": 6, "method": "tools/call", "params": {"name": "maf.parse", "arguments": {}}}
        resp = handle_message(_Broken(), msg)
        self.assertTrue(resp["result"]["isError"])
        self.assertIn("boom", resp["result"]["content"][0]["text"])

    def test_unknown_method(self) -> None:
        resp = handle_message(self.dispatcher, {"jsonrpc": "2.0", "id": 4, "method": "resources/list"})
        self.assertEqual(resp["error"]["code"], -32601)
        self.assertIsNone(handle_message(self.dispatcher, {"jsonrpc": "2.0", "method": "notifications/initialized"}))


if __name__ == "__main__":
    unittest.main()

"""Stand-in for ``mcp-remote``: a tiny MCP server on stdio.

Usage: stub_proxy.py <url>

The URL selects the behaviour:
    .../exit     exit with code 3 before reading anything
    .../silent   read requests but never answer
    .../reject   answer ``initialize`` with a JSON-RPC error
    .../single   list only the ``search`` tool
    anything else: a well-behaved server exposing a few tools

Tool names on the well-behaved server:
    search  echo the arguments back as text content
    slow    like search, but answer after 0.3s
    hang    never answer
    die     exit with code 1 without answering
    fail    answer with a JSON-RPC error
    split   answer in two separate writes
"""

import json
import sys
import threading
import time

_lock = threading.Lock()

TOOLS = [
    {
        "name": "search",
        "description": "Search issues",
        "inputSchema": {"type": "object", "properties": {"q": {"type": "string"}}},
    },
    {"name": "slow", "description": "Answers late", "inputSchema": {"type": "object"}},
    {"name": "hang", "description": "Never answers", "inputSchema": {"type": "object"}},
    {"name": "die", "description": "Exits mid-call", "inputSchema": {"type": "object"}},
    {"name": "fail", "description": "Returns an error", "inputSchema": {"type": "object"}},
    {"name": "split", "description": "Answers in pieces", "inputSchema": {"type": "object"}},
]


def write(data: str) -> None:
    with _lock:
        sys.stdout.write(data)
        sys.stdout.flush()


def reply(msg_id, result=None, error=None) -> None:
    message = {"jsonrpc": "2.0", "id": msg_id}
    if error is not None:
        message["error"] = error
    else:
        message["result"] = result
    write(json.dumps(message) + "\n")


def text_content(arguments) -> dict:
    return {"content": [{"type": "text", "text": json.dumps(arguments, sort_keys=True)}]}


def handle_call(msg_id, params) -> None:
    name = params.get("name")
    arguments = params.get("arguments", {})
    if name == "search":
        reply(msg_id, text_content(arguments))
    elif name == "slow":
        threading.Timer(0.3, reply, args=(msg_id, text_content(arguments))).start()
    elif name == "hang":
        return
    elif name == "die":
        sys.stdout.flush()
        sys.exit(1)
    elif name == "fail":
        reply(msg_id, error={"code": -32000, "message": "Tool exploded"})
    elif name == "split":
        line = json.dumps({"jsonrpc": "2.0", "id": msg_id, "result": text_content(arguments)})
        write(line[:10])
        time.sleep(0.05)
        write(line[10:] + "\n")
    else:
        reply(msg_id, error={"code": -32601, "message": f"Unknown tool: {name}"})


def main() -> int:
    url = sys.argv[-1] if len(sys.argv) > 1 else ""

    sys.stderr.write("Opening browser for authorization...\n")
    sys.stderr.write("Successfully authenticated\n")
    sys.stderr.flush()

    if url.endswith("/exit"):
        return 3

    for raw in sys.stdin:
        raw = raw.strip()
        if not raw:
            continue
        message = json.loads(raw)
        method = message.get("method")
        msg_id = message.get("id")
        if msg_id is None or url.endswith("/silent"):
            continue

        if method == "initialize":
            if url.endswith("/reject"):
                reply(msg_id, error={"code": -32603, "message": "Unauthorized"})
            else:
                reply(
                    msg_id,
                    {
                        "protocolVersion": message["params"]["protocolVersion"],
                        "capabilities": {"tools": {}},
                        "serverInfo": {"name": "stub", "version": "0.0.1"},
                    },
                )
        elif method == "tools/list":
            reply(msg_id, {"tools": TOOLS[:1] if url.endswith("/single") else TOOLS})
        elif method == "tools/call":
            handle_call(msg_id, message.get("params", {}))
        else:
            reply(msg_id, error={"code": -32601, "message": f"Method not found: {method}"})
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Example 02: JSON-RPC Client

Talks to a running server over HTTP. Start one first:

    row-serve --port 8080
"""

import json

import httpx

URL = "http://localhost:8080/mcp"


def call(client, method, params=None, request_id=1):
    payload = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        payload["params"] = params
    return client.post(URL, json=payload).json()


def tool(client, name, **arguments):
    return call(client, "tools/call", {"name": name, "arguments": arguments})


def main():
    with httpx.Client(timeout=30) as client:
        info = call(client, "initialize", {})["result"]
        print(f"Connected to {info['serverInfo']['name']} {info['serverInfo']['version']}\n")

        print(tool(client, "create_connection", connection_id="demo", dsn="sqlite3://:memory:"))
        tool(client, "execute_statement", connection_id="demo",
             statement="CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT)")
        tool(client, "execute_statement", connection_id="demo",
             statement="INSERT INTO notes (body) VALUES (?)", args=["hello"])

        result = tool(client, "execute_query", connection_id="demo", query="SELECT * FROM notes")
        print(json.loads(result["result"]["content"][0]["text"]))

        status = call(client, "resources/read", {"uri": "connections://status"})
        print(status["result"]["contents"][0]["text"])

        print(tool(client, "close_connection", connection_id="demo"))


if __name__ == "__main__":
    main()

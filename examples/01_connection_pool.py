"""
Example 01: Connection Pool

This example demonstrates using the ConnectionPool directly, without the
HTTP server.
"""

import asyncio

from row_serve import ConnectionPool, ServerConfig


async def main():
    pool = ConnectionPool(ServerConfig(max_connections=5, request_timeout=10))

    print("=== Connection Pool ===\n")

    print("1. Create a connection:")
    conn = await pool.create_connection("demo", "sqlite3://:memory:")
    print(f"   {conn.info().to_dict()}\n")

    print("2. Execute statements:")
    await conn.execute_statement(
        "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT NOT NULL, email TEXT NOT NULL)"
    )
    for name, email in [("Alice", "alice@example.com"), ("Bob", "bob@example.com")]:
        result = await conn.execute_statement(
            "INSERT INTO users (name, email) VALUES (?, ?)", name, email
        )
        print(f"   Inserted {name}: {result.to_dict()}")
    print()

    print("3. Execute a query:")
    result = await pool.get_connection("demo").execute_query(
        "SELECT id, name, email FROM users ORDER BY name"
    )
    print(f"   Columns: {result.columns} ({result.column_types})")
    for row in result.rows:
        print(f"   - {row}")
    print()

    print("4. Health check:")
    await pool.check_connection("demo")
    print("   demo is healthy\n")

    print("5. Concurrent queries:")
    counts = await asyncio.gather(
        *(conn.execute_query("SELECT COUNT(*) FROM users") for _ in range(3))
    )
    print(f"   Counts: {[r.rows[0][0] for r in counts]}\n")

    await pool.close()
    print(f"Pool closed, {pool.size()} connections left")


if __name__ == "__main__":
    asyncio.run(main())

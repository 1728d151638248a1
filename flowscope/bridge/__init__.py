"""Bridge layer — transport, RPC client, and the status server.

transport
    Locates an observed process's socket and opens it.
rpc
    JSON-lines request/response client with its own message loop.
server
    The remote side: exposes a pipeline's topology and statuses.
"""

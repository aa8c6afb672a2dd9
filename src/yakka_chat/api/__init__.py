"""HTTP and websocket API for the Yakka chat service."""

"""HTTP routers, each built against an application context."""

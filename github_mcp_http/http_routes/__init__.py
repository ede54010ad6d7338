"""Starlette route builders for the gateway's HTTP surface."""

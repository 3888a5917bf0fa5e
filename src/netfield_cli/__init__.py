#!/usr/bin/env python3
"""A CLI for the netfield_ws library."""

#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.

Binds the engine to the test database unless IS_TESTING is already set, so
local runs never touch production data.
"""
import os

os.environ.setdefault("IS_TESTING", "true")

import uvicorn

if __name__ == "__main__":
    print("Starting CourtBook API at http://localhost:8000 (docs at /docs)")
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")

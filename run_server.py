#!/usr/bin/env python3
"""
Server launcher for the DataFact API.

Listens on $PORT (default 8080). Set DATAFACT_API_KEY before starting; the
persona filter additionally needs SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY.
"""

import os
import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8080"))
    reload = os.getenv("DATAFACT_RELOAD", "").lower() in ("1", "true", "yes")

    print("Starting DataFact API Server")
    print(f"Server will be available at: http://localhost:{port}")
    print(f"API documentation at: http://localhost:{port}/docs")
    print("\n" + "="*50 + "\n")

    uvicorn.run(
        "datafact.api.main:app",
        host="0.0.0.0",  # Accept connections from any IP
        port=port,
        reload=reload,   # development only
        log_level=os.getenv("DATAFACT_LOG_LEVEL", "info").lower()
    )

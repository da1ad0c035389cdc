#!/usr/bin/env python3
"""
Development runner for the Picture Tales service.
"""
import uvicorn
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from tales.config import settings

if __name__ == "__main__":
    print("Starting Picture Tales - Story Service")
    print(f"Host: {settings.host}:{settings.port}")
    print(f"Debug: {settings.debug}")
    print(f"LLM provider: {settings.llm_provider} ({settings.llm_model})")
    print(f"Storage backend: {settings.storage_backend}")
    print("-" * 50)

    uvicorn.run(
        "tales.service:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info" if settings.debug else "warning"
    )

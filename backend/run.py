"""
MegaChat Backend Runner
Run with: python run.py
"""

import uvicorn
from megachat.config import settings


if __name__ == "__main__":
    print(f"""
    MegaChat backend

    Starting server at http://{settings.HOST}:{settings.PORT}

    API Documentation: http://localhost:{settings.PORT}/docs
    """)

    uvicorn.run(
        "megachat.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import plancache.models  # noqa: F401  registers tables on Base
from plancache.api import planning
from plancache.database import Base, engine

logging.basicConfig(level=logging.INFO)

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Plan Cache API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(planning.router)


# Root endpoint
@app.get("/")
def root():
    return {
        "message": "Welcome to Plan Cache API",
        "docs": "/docs",
        "redoc": "/redoc"
    }


# Health check endpoint
@app.get("/health")
def health_check():
    return {"status": "healthy", "message": "API is running"}

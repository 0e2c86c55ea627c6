"""
FastAPI 应用入口点。
"""

from loguru import logger
from fastapi.middleware.cors import CORSMiddleware

from fastapi import FastAPI
from src.server.ca_registrator.router import router as ca_registrator_router

from src.server.config import config

app = FastAPI(title="IoT CA Registration Service")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 包含 CA 注册服务的路由
app.include_router(ca_registrator_router, prefix="/v1")

logger.info(f"config: {config.model_dump_json(indent=4)}")

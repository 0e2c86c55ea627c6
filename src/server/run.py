#!/usr/bin/env python
import uvicorn
import os
from dotenv import load_dotenv
from pathlib import Path

from loguru import logger

if __name__ == "__main__":
    load_dotenv(Path.cwd() / ".env")
    # .env 加载后再导入配置，保证其中的变量生效
    from src.server.config import config, configure_logging

    configure_logging(config)
    logger.info("IoT CA Registration Service, start running!")
    logger.info(f"当前应用环境：{os.getenv('APP_ENV')}")

    uvicorn.run(
        "src.server.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("APP_ENV", "").lower() == "dev",
        log_level=config.log_level.lower(),
    )

import asyncio
from config.loader import get_core_config
from utils.service import ContractFilterService
from utils.logging import logger, configure_logging
from utils.redis.redis_conn import RedisPool

async def main():
    service = None
    try:
        settings = get_core_config()
        # Reconfigure logging with settings
        configure_logging(
            level=settings.logs.level,
            debug_mode=settings.logs.debug_mode,
            write_to_files=settings.logs.write_to_files,
        )
        logger.info("🚀 Starting Contract Filter Service...")
        service = ContractFilterService(settings)
        await service.init()
        await service.start()
        await service.wait()
    except Exception as e:
        logger.critical(f"🆘 Service failed to start or crashed: {e}")
        raise
    finally:
        logger.info("Shutting down resources...")
        if service:
            await service.close()
        await RedisPool.close()
        logger.info("Shutdown complete.")

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("🛑 Service interrupted by user.")
    except Exception as e:
        logger.critical(f"🆘 Service crashed: {e}")
        raise

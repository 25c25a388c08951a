from openmd.core.config import Settings


class ProductionSettings(Settings):
    """Production settings for OpenMD API

    DATABASE_URL, REDIS_URL and SECRET_KEY are injected from the deployment
    environment; the defaults below only tighten the development ones.
    """

    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    ARGON2_TIME_COST: int = 3
    ARGON2_PARALLELISM: int = 2

    LOG_LEVEL: str = "WARNING"

    # App
    DEBUG: bool = False

    class Config:
        env_file = [".env.production"]
        case_sensitive = True
        extra = "ignore"

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Anthropic (required for the recommendation stream)
    anthropic_api_key: str = ""
    default_model: str = "claude-opus-4-6"

    # Research run
    research_max_turns: int = 60
    research_max_tokens: int = 16000
    web_search_max_uses: int = 40
    web_fetch_max_uses: int = 40

    # Relay
    keepalive_interval_seconds: float = 15.0
    thinking_max_chars: int = 500

    # Message board
    messages_file: str = "data/messages.json"
    max_message_length: int = 280
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    telegram_api_base: str = "https://api.telegram.org"

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()

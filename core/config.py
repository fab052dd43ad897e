from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Source can be "0" (webcam index) or RTSP/HTTP URL
    SOURCE: str = "0"
    ENABLE_CAMERA: bool = False
    FACE_LANDMARKER_MODEL: str = "face_landmarker.task"
    DETECT_INTERVAL_MS: float = 120.0  # ~8 Hz landmark polling
    DATA_DIR: str = "data"

    # Security / features
    ALLOW_ORIGINS: str = "http://localhost:3000"
    EVENTS_MAX: int = 200
    LOG_LEVEL: str = "INFO"

    # Tunable heuristics
    MIN_VERTICAL_RATIO: float = 0.85
    POSITION_AMPLIFICATION: float = 10.0
    MASK_MARGIN_X: float = 0.9
    MASK_MARGIN_TOP: float = 0.65
    MASK_MARGIN_BOTTOM: float = 0.35
    CONFIDENCE_HIGH: float = 0.85
    CONFIDENCE_MEDIUM: float = 0.70

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def source_is_index(self) -> bool:
        return self.SOURCE.isdigit()

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.ALLOW_ORIGINS.split(",") if o.strip()]

    @property
    def detect_interval_s(self) -> float:
        return max(self.DETECT_INTERVAL_MS, 0.0) / 1000.0

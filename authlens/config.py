"""
Central application configuration.

Every tunable value lives here as a typed, documented field.
Any field can be overridden at runtime via an environment variable of the
same name (case-insensitive), e.g.:

    INFERENCE_LOADING_RETRY_DELAY_SEC=5 uvicorn authlens.main:app
    export HF_API_TOKEN=hf_xxx

A `.env` file at the project root is loaded automatically.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,   # HF_API_TOKEN == hf_api_token
        extra="ignore",         # silently drop unknown env vars
    )

    # ------------------------------------------------------------------ #
    # Remote Inference                                                    #
    # ------------------------------------------------------------------ #
    inference_base_url: str = Field(
        "https://api-inference.huggingface.co/models",
        description="Base URL; the model id is appended as a path segment"
    )
    hf_api_token: Optional[str] = Field(
        None, description="Default credential when the request carries none"
    )
    inference_http_timeout_sec: float = Field(
        60.0, description="Total timeout for one inference round-trip (seconds)"
    )
    inference_loading_retry_delay_sec: float = Field(
        20.0, description="Wait before re-sending a request to a model that is still loading"
    )
    inference_max_loading_retries: Optional[int] = Field(
        None, description="Cap on loading retries; None retries until the model is up"
    )
    text_input_max_chars: int = Field(
        2000, description="Text is truncated to this many characters before upload"
    )

    # ------------------------------------------------------------------ #
    # Model Identifiers                                                   #
    # ------------------------------------------------------------------ #
    text_detector_model: str = Field(
        "openai-community/roberta-base-openai-detector",
        description="Primary AI-text detector (labels: Real/Fake, LABEL_1 = real)"
    )
    text_alternate_model: str = Field(
        "Hello-SimpleAI/chatgpt-detector-roberta",
        description="Tried when the primary text detector fails (labels: Human/ChatGPT)"
    )
    image_detector_model: str = Field(
        "umm-maybe/AI-image-detector",
        description="AI-generated image classifier"
    )
    deepfake_detector_model: str = Field(
        "dima806/deepfake_vs_real_faces_detection",
        description="Face deepfake classifier"
    )

    # ------------------------------------------------------------------ #
    # Pixel Analysis                                                      #
    # ------------------------------------------------------------------ #
    pixel_analysis_max_side: int = Field(
        256, description="Images are downscaled so neither side exceeds this (px)"
    )
    pixel_repeat_sample_size: int = Field(
        1000, description="Max pixel positions sampled for the repetition check"
    )
    pil_max_image_pixels: int = Field(
        20_000_000, description="PIL decompression-bomb guard (pixels)"
    )

    # ------------------------------------------------------------------ #
    # HTTP Surface                                                        #
    # ------------------------------------------------------------------ #
    max_image_upload_mb: int = Field(
        20, description="Max MB for multipart image uploads"
    )
    min_text_chars: int = Field(
        50, description="Shortest text accepted by POST /analyze/text"
    )
    rate_limit_request_window_sec: int = Field(
        60, description="Sliding window for per-client request rate (seconds)"
    )
    rate_limit_max_requests: int = Field(
        10, description="Max requests allowed within the rate-limit window"
    )
    rate_limit_memory_limit: int = Field(
        1000, description="Max keys before the in-memory rate-limit map is pruned"
    )

    # ------------------------------------------------------------------ #
    # Derived byte-level properties                                       #
    # ------------------------------------------------------------------ #
    @property
    def max_image_upload_bytes(self) -> int:
        return self.max_image_upload_mb * 1024 * 1024


# Single shared instance; import this everywhere.
settings = Settings()

"""
Engine Configuration
====================
Centralised settings for sampling rates, window sizes, staircase parameters
and motion scoring constants. Values load from environment variables
(prefixed ``VITALSENSE_``) and the project-level .env file. List fields
take JSON arrays, e.g. ``VITALSENSE_HEARING_LEVELS="[0, 10, 20]"``.
"""
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ── Paths ───────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Runtime settings shared by every assessment session."""

    model_config = SettingsConfigDict(
        env_prefix="VITALSENSE_",
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Logging ─────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # ── Heart rate (PPG) ────────────────────────────────────────────────
    ppg_sample_rate: float = Field(30.0, gt=0)        # Hz, nominal camera rate
    ppg_buffer_seconds: float = Field(15.0, gt=0)
    ppg_min_seconds: float = Field(5.0, gt=0)         # before the first recompute
    ppg_recompute_frames: int = Field(30, ge=1)       # ~once per second at 30 Hz
    ppg_history_size: int = Field(5, ge=1)
    ppg_low_cutoff_hz: float = 0.5
    ppg_high_cutoff_hz: float = 4.0
    ppg_peak_distance_seconds: float = 0.5
    ppg_peak_threshold_factor: float = 0.3
    bpm_min: float = 40.0
    bpm_max: float = 200.0

    # ── Hearing (staircase) ─────────────────────────────────────────────
    hearing_frequencies: List[float] = [250, 500, 1000, 2000, 4000, 8000]
    hearing_levels: List[float] = [0, 10, 20, 30, 40, 50, 60]
    hearing_start_index: int = 3
    hearing_trial_timeout_seconds: float = Field(4.0, gt=0)
    hearing_max_trials: int = Field(20, ge=3)
    hearing_max_session_seconds: float = Field(600.0, gt=0)

    # ── Motion (tremor / balance) ───────────────────────────────────────
    motion_min_samples: int = Field(10, ge=1)
    tremor_sample_rate: float = 50.0
    tremor_duration_seconds: float = Field(15.0, gt=0)
    tremor_intensity_scale: float = 100.0
    balance_sample_rate: float = 20.0
    balance_pose_seconds: float = Field(10.0, gt=0)
    balance_instability_scale: float = 10.0
    balance_orientation_scale: float = 5.0      # per deg/s of mean orientation-rate deviation
    balance_detrend_seconds: float = 1.0
    balance_poses: List[str] = ["Standing", "One Leg", "Eyes Closed"]
    balance_pose_weights: List[float] = [0.2, 0.4, 0.4]
    tremor_hands: List[str] = ["right", "left"]


settings = Settings()

"""
配置管理模块。
"""
import os
from dotenv import load_dotenv

# 加载 .env 文件
load_dotenv()


class Settings:
    """全局配置类"""

    # 项目配置
    project_name = "BiliTube"
    debug = os.getenv("DEBUG", "False").lower() == "true"

    # --- Platform credentials ---
    # SESSDATA is optional: without it the Bilibili client falls back to anonymous, unsigned requests.
    bilibili_sessdata = os.getenv("BILIBILI_SESSDATA", "")
    youtube_api_key = os.getenv("YOUTUBE_API_KEY", "")
    http_timeout = float(os.getenv("HTTP_TIMEOUT", "10"))

    # --- Storage ---
    data_dir = os.getenv("BILITUBE_DATA_DIR", "data")

    # --- Scanner / Runner pacing ---
    SCANNER_DELAY_MS = int(os.getenv("SCANNER_DELAY_MS", "1000"))
    SCANNER_MAX_USERS = int(os.getenv("SCANNER_MAX_USERS", "100"))
    VERIFY_DELAY_MS = int(os.getenv("VERIFY_DELAY_MS", "1000"))
    CHANNEL_SEARCH_CANDIDATES = 5

    # --- Verification thresholds ---
    LEVEL1_NAME_THRESHOLD = 0.8
    LEVEL2_CONFIDENCE = 0.85
    TITLE_MATCH_THRESHOLD = 0.7
    RECENT_VIDEO_SAMPLE = 10
    AUDIENCE_RATIO_MIN = 0.5
    AUDIENCE_RATIO_MAX = 2.0
    LEVEL3_MIN_CONFIDENCE = 0.7

    # --- Read-side mapping client ---
    MAPPING_CDN_BASE_URL = os.getenv(
        "MAPPING_CDN_BASE_URL",
        "https://cdn.jsdelivr.net/gh/palemoky/BiliTube-Wormhole@main/data",
    )
    MAPPING_RAW_BASE_URL = os.getenv(
        "MAPPING_RAW_BASE_URL",
        "https://raw.githubusercontent.com/palemoky/BiliTube-Wormhole/main/data",
    )
    MAPPING_CACHE_TTL = float(os.getenv("MAPPING_CACHE_TTL", "3600"))

    # --- Submission boundary ---
    github_token = os.getenv("GITHUB_TOKEN", "")
    github_owner = os.getenv("GITHUB_OWNER", "")
    github_repo = os.getenv("GITHUB_REPO", "")
    SUBMISSION_RATE_LIMIT = int(os.getenv("SUBMISSION_RATE_LIMIT", "10"))
    SUBMISSION_RATE_WINDOW = float(os.getenv("SUBMISSION_RATE_WINDOW", "3600"))
    SUBMISSION_NOTES_MAX = 500

    # --- YouTube Data API quota ---
    YOUTUBE_DAILY_QUOTA = 10000


settings = Settings()

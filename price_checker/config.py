"""設定モジュール — 環境変数・定数定義."""

import os
from pathlib import Path

from dotenv import load_dotenv

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# --- 状態の保存先 ---
# "file" or "supabase"
STATE_BACKEND: str = os.environ.get("STATE_BACKEND", "file")
STATE_FILE = Path(
    os.environ.get("STATE_FILE", str(_PROJECT_ROOT / ".price_checker" / "state.json"))
)

# --- Supabase（STATE_BACKEND=supabase のときのみ使用） ---
SUPABASE_URL: str = os.environ.get("SUPABASE_URL", "")
SUPABASE_SECRET_KEY: str = os.environ.get("SUPABASE_SECRET_KEY", "")
SUPABASE_SCHEMA = "price_checker"

# --- 対象マーケットプレイス ---
MARKETPLACE_DOMAINS = (
    "amazon.com",
    "amazon.co.uk",
    "amazon.de",
    "amazon.fr",
    "amazon.it",
    "amazon.es",
    "amazon.ca",
    "amazon.com.au",
)
PRODUCT_PATH_MARKERS = ("/dp/", "/gp/product/")

# --- User-Agent / ヘッダ ---
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

BROWSER_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

# --- リクエスト設定 ---
REQUEST_INTERVAL_MIN = 1.0
REQUEST_INTERVAL_MAX = 3.0
REQUEST_TIMEOUT = 15  # 秒

# --- バッチ設定 ---
MAX_PRODUCTS = 1000
AUTOSAVE_INTERVAL = 5.0  # 秒

# --- 判定しきい値 ---
LOW_STOCK_THRESHOLD = 20  # 個未満で在庫僅少
LATE_DELIVERY_DAYS = 10  # 日を超えると配送遅延
PRICE_INCREASE_PERCENT = 15.0  # %以上で値上がり

# --- ログ ---
LOG_DIR = Path(os.environ.get("LOG_DIR", str(_PROJECT_ROOT / "logs")))

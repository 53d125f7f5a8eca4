import json
import os
import queue
import threading

import requests

from prompt_tool_app import config, utils
from prompt_tool_app.core import GuidelineDocument


class GuidelineFetchError(Exception):
    """가이드라인 소스 하나를 읽지 못했을 때 발생합니다."""


class ConfigurationUnavailable(Exception):
    """원격/로컬/캐시 어느 경로로도 가이드라인을 얻지 못했습니다."""


class SettingsStorage:
    """JSON 파일 하나에 저장되는 문자열 키/값 저장소."""

    def __init__(self, path=config.SETTINGS_PATH):
        self.path = path
        self._lock = threading.Lock()

    def _read_all(self):
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data):
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)

    def get(self, key, default=None):
        with self._lock:
            value = self._read_all().get(key)
        return default if value is None else value

    def set(self, key, value):
        with self._lock:
            data = self._read_all()
            data[key] = str(value)
            self._write_all(data)

    def remove(self, key):
        with self._lock:
            data = self._read_all()
            if data.pop(key, None) is not None:
                self._write_all(data)


def parse_document_text(raw_text, origin):
    try:
        data = json.loads(raw_text)
    except (TypeError, ValueError) as e:
        raise GuidelineFetchError(f"{origin}: JSON 형식 오류 ({e})") from e
    if not isinstance(data, dict):
        raise GuidelineFetchError(f"{origin}: 가이드라인 문서는 JSON 객체여야 합니다.")
    return data


def fetch_json_text(url, session=None, timeout=config.FETCH_TIMEOUT):
    """URL에서 JSON 문서를 캐시 없이 가져와 (원문, dict)를 반환합니다."""
    http = session or requests
    try:
        response = http.get(url, headers={"Cache-Control": "no-cache"}, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise GuidelineFetchError(f"Failed to fetch {url}: {e}") from e
    try:
        raw_text = response.content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise GuidelineFetchError(f"{url}: UTF-8 디코딩 실패") from e
    return raw_text, parse_document_text(raw_text, url)


class RemoteSource:
    tag = "remote"
    persist = True

    def __init__(self, url, session=None):
        self.url = url
        self.session = session

    def attempt(self):
        return fetch_json_text(self.url, session=self.session)


class LocalBundleSource:
    tag = "local"
    persist = True

    def __init__(self, path=config.BUNDLED_GUIDELINES):
        self.path = path

    def attempt(self):
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw_text = f.read()
        except OSError as e:
            raise GuidelineFetchError(f"Failed to read {self.path}: {e}") from e
        return raw_text, parse_document_text(raw_text, self.path)


class CacheSource:
    tag = "cache"
    persist = False

    def __init__(self, storage):
        self.storage = storage

    def attempt(self):
        raw_text = self.storage.get(config.STORAGE_KEYS["CACHED_JSON"])
        if not raw_text:
            raise GuidelineFetchError("저장된 가이드라인 캐시가 없습니다.")
        return raw_text, parse_document_text(raw_text, "cache")


class GuidelineResolver:
    """가이드라인 문서를 원격(또는 번들) → 캐시 순서로 확보하고 게시합니다."""

    def __init__(self, store, storage, bundle_path=config.BUNDLED_GUIDELINES, session=None, log_queue=None):
        self.store = store
        self.storage = storage
        self.bundle_path = bundle_path
        self.session = session
        self.log_queue = log_queue if log_queue is not None else queue.Queue()

    def strategies(self):
        source_url = (self.storage.get(config.STORAGE_KEYS["SOURCE_URL"]) or "").strip()
        primary = RemoteSource(source_url, self.session) if source_url else LocalBundleSource(self.bundle_path)
        return [primary, CacheSource(self.storage)]

    def resolve(self):
        first_error = None
        for strategy in self.strategies():
            try:
                raw_text, data = strategy.attempt()
                document = GuidelineDocument.from_dict(data, strategy.tag)
            except (GuidelineFetchError, KeyError, TypeError, ValueError) as e:
                self.log_queue.put((f"가이드라인 로드 실패 ({strategy.tag}): {e}", "WARNING", False))
                first_error = first_error or e
                continue

            if strategy.persist:
                try:
                    self.storage.set(config.STORAGE_KEYS["CACHED_JSON"], raw_text)
                except OSError as e:
                    self.log_queue.put((f"가이드라인 캐시 저장 실패: {e}", "WARNING", False))
            self.store.publish(document)
            self.log_queue.put((
                f"가이드라인 v{document.version} 적용 (출처: {document.source}, 모델 {len(document.models)}개)",
                "INFO", False,
            ))
            return document

        raise ConfigurationUnavailable(f"가이드라인을 불러올 수 없습니다: {first_error}") from first_error


def _run_in_thread(func):
    threading.Thread(target=func, daemon=True).start()


class RefreshScheduler:
    """Tk의 after()로 주기적인 가이드라인 재확인을 예약합니다.

    활성 타이머는 항상 하나뿐이며, 실패한 회차와 관계없이 같은 주기로 계속 실행됩니다.
    """

    def __init__(self, host, resolver, log_queue=None, run_in_background=_run_in_thread):
        self.host = host
        self.resolver = resolver
        self.log_queue = log_queue if log_queue is not None else resolver.log_queue
        self.run_in_background = run_in_background
        self.interval_ms = None
        self._after_id = None
        self._on_refresh = None

    def schedule(self, minutes, on_refresh=None):
        minutes = utils.normalize_minutes(minutes)
        self.cancel()
        self.interval_ms = int(minutes * 60 * 1000)
        self._on_refresh = on_refresh
        self._after_id = self.host.after(self.interval_ms, self._tick)
        self.log_queue.put((f"자동 업데이트 예약: {minutes}분 간격", "DEBUG", False))
        return minutes

    def cancel(self):
        if self._after_id is not None:
            self.host.after_cancel(self._after_id)
            self._after_id = None

    @property
    def active(self):
        return self._after_id is not None

    def _tick(self):
        self._after_id = self.host.after(self.interval_ms, self._tick)
        self.run_in_background(self._refresh)

    def _refresh(self):
        try:
            document = self.resolver.resolve()
        except ConfigurationUnavailable as e:
            self.log_queue.put((f"자동 업데이트 실패: {e}", "ERROR", False))
            return
        if self._on_refresh:
            callback = self._on_refresh
            self.host.after(0, lambda: callback(document))

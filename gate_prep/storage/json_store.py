# gate_prep/storage/json_store.py
from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import tempfile
import threading
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from gate_prep.domain.enums import AnalysisStatus, ErrorType
from gate_prep.domain.errors import StaleStateError
from gate_prep.domain.models import Attempt, PerformanceAnalysis, UserGamificationState
from gate_prep.storage.serialization import (
    analysis_to_dict,
    attempt_from_dict,
    attempt_to_dict,
    classification_to_dict,
    gamification_from_dict,
    gamification_to_dict,
)

logger = logging.getLogger(__name__)


class JsonFileStore:
    """
    Storico domande + tentativi + stato di gamification, un file JSON per utente:

        <data_dir>/users/<user_key>.json
        {"userId": ..., "attempts": [...], "stats": {...} | null}

    L'id di un tentativo è "<user_key>-<uuid>" così da ritrovare il file senza indice.
    Ogni metodo async esegue il suo read-modify-write completo in un thread
    (asyncio.to_thread), sotto un threading.Lock del store: il loop non si
    blocca sul disco e due scritture sullo stesso file non si intrecciano.
    """

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)
        self.users_dir = self.data_dir / "users"
        self.users_dir.mkdir(parents=True, exist_ok=True)
        self._io_lock = threading.Lock()

    async def _run(self, fn, *args):
        def locked():
            with self._io_lock:
                return fn(*args)

        return await asyncio.to_thread(locked)

    # --- file helpers (sincroni, solo dentro _run) ---
    @staticmethod
    def user_key(user_id: str) -> str:
        return hashlib.sha256(user_id.encode("utf-8")).hexdigest()[:32]

    def _path(self, user_key: str) -> Path:
        return self.users_dir / f"{user_key}.json"

    def _read(self, user_key: str) -> Optional[Dict[str, Any]]:
        path = self._path(user_key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _read_user(self, user_id: str) -> Dict[str, Any]:
        return self._read(self.user_key(user_id)) or {"userId": user_id, "attempts": [], "stats": None}

    def _write(self, user_key: str, doc: Dict[str, Any]) -> None:
        # scrittura atomica: file temporaneo + os.replace
        fd, tmp = tempfile.mkstemp(dir=self.users_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self._path(user_key))
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise

    # --- history store ---
    async def get_all_question_texts_for_user(self, user_id: str) -> Set[str]:
        doc = await self._run(self._read_user, user_id)
        return {
            q["question"].strip()
            for a in doc["attempts"]
            for q in a.get("questions", [])
            if q.get("question")
        }

    # --- attempts ---
    async def save_attempt(self, attempt: Attempt) -> str:
        key = self.user_key(attempt.user_id)
        attempt_id = attempt.attempt_id or f"{key}-{uuid.uuid4().hex}"
        attempt.attempt_id = attempt_id
        row = attempt_to_dict(attempt)

        def save() -> None:
            doc = self._read_user(attempt.user_id)
            doc["attempts"] = [a for a in doc["attempts"] if a.get("id") != attempt_id] + [row]
            self._write(key, doc)

        await self._run(save)
        logger.info("[STORE] Saved attempt %s (score=%s)", attempt_id, attempt.score)
        return attempt_id

    async def get_attempt(self, attempt_id: str) -> Optional[Attempt]:
        doc = await self._run(self._read, attempt_id.split("-", 1)[0])
        if doc is None:
            return None
        for row in doc["attempts"]:
            if row.get("id") == attempt_id:
                return attempt_from_dict(row)
        return None

    async def list_attempts(self, user_id: str) -> List[Attempt]:
        """Tentativi dell'utente, dal più recente."""
        doc = await self._run(self._read_user, user_id)
        attempts = [attempt_from_dict(r) for r in doc["attempts"]]
        return sorted(attempts, key=lambda a: a.created_at, reverse=True)

    async def update_attempt_error_classification(
        self,
        attempt_id: str,
        classification: Dict[int, ErrorType],
        analysis: Optional[PerformanceAnalysis] = None,
    ) -> None:
        key = attempt_id.split("-", 1)[0]

        def update() -> None:
            doc = self._read(key)
            row = None
            if doc is not None:
                row = next((r for r in doc["attempts"] if r.get("id") == attempt_id), None)
            if row is None:
                raise KeyError(f"attempt not found: {attempt_id}")

            row["errorClassification"] = classification_to_dict(classification)
            for i, err in classification.items():
                if 0 <= i < len(row["questions"]):
                    row["questions"][i]["errorType"] = err.value
            if analysis is not None:
                row["performanceAnalysis"] = analysis_to_dict(analysis)
            row["analysisStatus"] = AnalysisStatus.PRESENT.value
            self._write(key, doc)

        await self._run(update)
        logger.info("[STORE] Attached error classification to %s", attempt_id)

    # --- gamification ---
    async def load_gamification_state(self, user_id: str) -> Optional[UserGamificationState]:
        stats = (await self._run(self._read_user, user_id)).get("stats")
        return gamification_from_dict(stats) if stats else None

    async def save_gamification_state(self, user_id: str, state: UserGamificationState) -> UserGamificationState:
        """
        Scrittura ottimistica: `state.version` deve essere la versione letta.
        Solleva StaleStateError se nel frattempo qualcuno ha salvato.
        """
        key = self.user_key(user_id)

        def save() -> UserGamificationState:
            doc = self._read_user(user_id)
            stored = doc.get("stats")
            current_version = int(stored.get("version", 0)) if stored else 0
            if state.version != current_version:
                raise StaleStateError(user_id, state.version, current_version)

            saved = replace(state, version=current_version + 1)
            doc["stats"] = gamification_to_dict(saved)
            self._write(key, doc)
            return saved

        return await self._run(save)

# ==============================================================================
# REPOSITORIO BASE - Archivos JSON completos
# ==============================================================================
# Cada repositorio es dueño de un archivo JSON (dict o lista) que se lee
# entero y se reescribe entero. Todas las escrituras pasan por _write_raw:
# archivo temporal + os.replace, dentro de un RLock compartido.
# ==============================================================================

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class BaseRepository(ABC):
    """Archivo JSON de datos. Sin caché: cada lectura va al disco."""

    # Compartido entre repositorios (un solo proceso de servidor)
    _file_lock = threading.RLock()

    def __init__(self, file_path: str):
        self.file_path = file_path
        folder = os.path.dirname(file_path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        if not os.path.exists(file_path):
            self._write_raw(self._empty_data())

    @abstractmethod
    def _empty_data(self) -> Any:
        ...

    def _read_raw(self) -> Any:
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except FileNotFoundError:
                return self._empty_data()
            except json.JSONDecodeError:
                logger.warning("JSON inválido en %s, se lee como vacío", self.file_path)
                return self._empty_data()

    def _write_raw(self, data: Any) -> None:
        """Reemplaza el archivo completo. Propaga OSError."""
        tmp = f"{self.file_path}.tmp"
        with self._file_lock:
            try:
                with open(tmp, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(tmp, self.file_path)
            except OSError:
                if os.path.exists(tmp):
                    os.remove(tmp)
                raise

    def reload(self) -> None:
        pass


class DictRepository(BaseRepository):
    """Archivo con forma {clave: registro}. Las claves se guardan como str."""

    def _empty_data(self) -> Dict:
        return {}

    def get_all(self) -> Dict[str, Record]:
        data = self._read_raw()
        if not isinstance(data, dict):
            return {}
        return data

    def get_by_id(self, key: Any) -> Optional[Record]:
        return self.get_all().get(str(key))

    def save_all(self, data: Dict[str, Record]) -> None:
        self._write_raw(data)

    def update(self, key: Any, record: Record) -> None:
        with self._file_lock:
            data = self.get_all()
            data[str(key)] = record
            self._write_raw(data)

    def delete(self, key: Any) -> Optional[Record]:
        """Quita la clave y retorna lo que había (None si no existía)."""
        with self._file_lock:
            data = self.get_all()
            if str(key) not in data:
                return None
            removed = data.pop(str(key))
            self._write_raw(data)
            return removed


class ListRepository(BaseRepository):
    """Archivo con forma [registro, registro, ...] en orden de inserción."""

    def _empty_data(self) -> List:
        return []

    def get_all(self) -> List[Record]:
        data = self._read_raw()
        if not isinstance(data, list):
            return []
        return data

    def save_all(self, data: List[Record]) -> None:
        self._write_raw(data)

    def append(self, record: Record) -> None:
        with self._file_lock:
            data = self.get_all()
            data.append(record)
            self._write_raw(data)

    def next_numeric_id(self, field: str = 'id') -> str:
        """Mayor valor numérico de `field` + 1, como str. Ignora valores no numéricos."""
        highest = 0
        for record in self.get_all():
            try:
                highest = max(highest, int(record.get(field, 0)))
            except (TypeError, ValueError):
                continue
        return str(highest + 1)

    def update_first(self, match: Callable[[Record], bool], changes: Record) -> Optional[Record]:
        """
        Aplica `changes` al primer registro que cumple `match`.

        Returns:
            El registro ya actualizado, o None si ninguno coincide
        """
        with self._file_lock:
            data = self.get_all()
            for record in data:
                if match(record):
                    record.update(changes)
                    self._write_raw(data)
                    return record
            return None

    def pop_first(self, match: Callable[[Record], bool]) -> Optional[Record]:
        with self._file_lock:
            data = self.get_all()
            for index, record in enumerate(data):
                if match(record):
                    removed = data.pop(index)
                    self._write_raw(data)
                    return removed
            return None

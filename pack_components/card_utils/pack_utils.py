import json
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from pack_components.card_utils.card import Rarity
from pack_components.card_utils.pack import Guarantee, Pack
from pack_components.card_utils.rarity_table import PackRarityTable, RarityTable
from pack_components.errors import ConfigurationError

PACK_JSON_DIR = Path(__file__).parent.parent.resolve() / "pack_json"
# shared card catalogs live here; it is not a pack category
CATALOG_DIR_NAME = "catalogs"


def _resolve(path: Union[str, Path], pack_json_dir: Path) -> Path:
    path = Path(path)
    if path.is_absolute() and path.exists():
        return path
    # "/core/starter_pack.json" becomes "core/starter_pack.json"
    clean_path = str(path).lstrip("/\\")
    return pack_json_dir / clean_path


def _load_json(full_path: Path) -> Dict[str, Any]:
    try:
        with open(full_path, "r") as f:
            return json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Pack definition not found: {full_path}") from None
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{full_path.name}: Invalid JSON ({e})") from e


def _catalog_section(data: Dict[str, Any], pack_json_dir: Path) -> Dict[str, Any]:
    catalog = data.get("catalog", {})
    # a string names a shared catalog file, e.g. "realms" -> catalogs/realms.json
    if isinstance(catalog, str):
        catalog = _load_json(pack_json_dir / CATALOG_DIR_NAME / f"{catalog}.json")
    return catalog


def pack_from_dict(data: Dict[str, Any], pack_json_dir: Path = PACK_JSON_DIR) -> Tuple[Pack, PackRarityTable]:
    pack_id = data.get("pack_id")
    if not pack_id:
        raise ConfigurationError("Pack definition has no pack_id")

    try:
        guarantees = tuple(
            Guarantee(rarity=Rarity.parse(g["rarity"]), count=int(g["count"]))
            for g in data.get("guarantees", [])
        )
        pack = Pack(
            id=pack_id,
            name=data.get("pack_name", "Unnamed Pack"),
            price=int(data.get("price", 0)),
            card_count=int(data.get("card_count", 5)),
            guarantees=guarantees,
            description=data.get("description", ""),
            image=data.get("image", ""),
            is_available=bool(data.get("is_available", True)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"{pack_id}: malformed pack definition ({e})") from e
    pack.validate()

    table = PackRarityTable.from_dict(
        {
            "rarity_weights": data.get("rarity_weights", {}),
            "value_ranges": data.get("value_ranges", {}),
            "catalog": _catalog_section(data, pack_json_dir),
        },
        pack_id=pack_id,
    )
    for g in pack.guarantees:
        if g.count and g.rarity not in table.value_ranges:
            raise ConfigurationError(f"{pack_id}: guaranteed {g.rarity.value} has no value range")
    return pack, table


def pack_from_path(path: Union[str, Path], pack_json_dir: Path = PACK_JSON_DIR) -> Tuple[Pack, PackRarityTable]:
    """
    Load a Pack and its rarity table from a JSON file, using a path relative
    to the pack_json directory.

    :param path: Path string like "/core/starter_pack.json"
    """
    full_path = _resolve(path, pack_json_dir)
    return pack_from_dict(_load_json(full_path), pack_json_dir)


def _pack_files(pack_json_dir: Path) -> List[Tuple[str, Path]]:
    files = []
    for category_dir in sorted(pack_json_dir.iterdir()):
        if not category_dir.is_dir() or category_dir.name == CATALOG_DIR_NAME:
            continue
        for json_file in sorted(category_dir.glob("*.json")):
            files.append((f"/{category_dir.name}/{json_file.name}", json_file))
    return files


def scan_pack_directory(pack_json_dir: Path = PACK_JSON_DIR, known: Dict[str, Pack] = None) -> Dict[str, Any]:
    """
    Scan every category directory under pack_json and load the packs not yet known.
    Returns dict with the loaded packs/tables and stats about packs added, skipped, and errors.
    """
    known = known or {}
    results: Dict[str, Any] = {
        "added": [],
        "skipped": [],
        "errors": [],
        "packs": {},
        "tables": {},
    }

    if not pack_json_dir.exists():
        results["errors"].append(f"{pack_json_dir}: directory does not exist")
        return results

    for pack_path, json_file in _pack_files(pack_json_dir):
        try:
            pack, table = pack_from_path(json_file, pack_json_dir)
        except ConfigurationError as e:
            results["errors"].append(f"{json_file.name}: {e}")
            continue

        if pack.id in known or pack.id in results["packs"]:
            results["skipped"].append(pack.id)
            continue

        results["packs"][pack.id] = pack
        results["tables"][pack.id] = table
        results["added"].append(pack_path)

    return results


def load_pack_directory(pack_json_dir: Path = PACK_JSON_DIR) -> Tuple[Dict[str, Pack], RarityTable]:
    """Load every pack definition, failing on the first bad file."""
    results = scan_pack_directory(pack_json_dir)
    if results["errors"]:
        raise ConfigurationError("; ".join(results["errors"]))
    if results["skipped"]:
        raise ConfigurationError(f"Duplicate pack ids: {', '.join(results['skipped'])}")
    return results["packs"], RarityTable(results["tables"])

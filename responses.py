from typing import Any, Dict, List, Optional


def success(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body


def success_list(items: List[Dict[str, Any]], **extra: Any) -> Dict[str, Any]:
    body = {"success": True, "count": len(items), "data": items}
    body.update(extra)
    return body

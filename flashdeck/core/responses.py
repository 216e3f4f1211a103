from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from flashdeck.services.results import Result


def result_response(result: Result) -> JSONResponse:
    """
    Traduit un Result de service en réponse HTTP:
    {"success": true, "data": ...} ou {"success": false, "error": ..., "kind": ...}.
    """
    if result.success:
        return JSONResponse(
            status_code=result.status_code,
            content={"success": True, "data": jsonable_encoder(result.data)},
        )

    body = {
        "success": False,
        "error": result.error,
        "kind": result.kind.value if result.kind else None,
    }
    if result.details:
        body["details"] = result.details
    if result.limit_reached:
        body["limit_reached"] = True
    if result.requires_description:
        body["requires_description"] = True
    return JSONResponse(status_code=result.status_code, content=body)

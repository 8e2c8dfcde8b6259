from fastapi import Query


def page_params(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    return {"limit": limit, "offset": offset}

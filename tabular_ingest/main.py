import io
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Query, UploadFile

from .config import get_settings
from .errors import EmptyTableError, SheetNotFoundError, UnsupportedFormatError
from .extract import parse_tables
from .logger import configure_logging
from .models import HealthResponse, ParseResponse, ParseSummary

configure_logging(get_settings().LOG_LEVEL)

app = FastAPI(
    title="tabular-ingest",
    description="Extraction of CSV and spreadsheet files into normalized tables",
    version="0.1.0",
)


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.post("/parse", response_model=ParseResponse)
async def parse_file(
    file: UploadFile = File(...),
    use_header_row: bool = Query(default=False),
    sheet_name: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=0),
):
    filename = file.filename or ""
    raw = await file.read()

    try:
        container = parse_tables(
            io.BytesIO(raw), filename, use_header_row, sheet_name, limit=limit
        )
    except UnsupportedFormatError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except EmptyTableError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SheetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    summary = ParseSummary(
        tables=len(container.tables),
        rows=sum(len(t.rows) for t in container.tables),
        columns=len(container.tables[0].columns) if len(container.tables) == 1 else None,
    )
    return ParseResponse(filename=filename, summary=summary, container=container)

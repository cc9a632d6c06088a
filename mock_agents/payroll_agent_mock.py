import json

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
import uvicorn

app = FastAPI()

QUERY_MARKER = "User's original query: "

# Replies are sent as text/plain bodies that carry a JSON record.
ANSWERS = {
    "gross salary": {
        "status": "ok",
        "response": "**Gross Salary:** $5,000",
    },
    "net salary": {
        "status": "ok",
        "response": "**Net Salary:** $3,900",
        "data": {"gross": 5000, "tax": 850, "social_security": 250, "net": 3900},
        "entities": {"period": "current_month"},
    },
}


class SpecialistRequestBody(BaseModel):
    request: str


@app.post("/invoke", response_class=PlainTextResponse)
async def invoke(body: SpecialistRequestBody):
    if QUERY_MARKER not in body.request:
        raise HTTPException(status_code=400, detail="Request does not carry the user's query")

    query = body.request.rsplit(QUERY_MARKER, 1)[1].lower()
    for phrase, answer in ANSWERS.items():
        if phrase in query:
            return json.dumps(answer)

    return "Sorry, I don't know."


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8101)

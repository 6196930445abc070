import uvicorn

from trip_planner.core.config import DEBUG, SERVER_HOST, SERVER_PORT

if __name__ == "__main__":
    uvicorn.run("trip_planner.main:app", host=SERVER_HOST, port=SERVER_PORT, reload=DEBUG)

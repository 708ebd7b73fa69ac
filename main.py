# main.py (project root)
from fastapi import FastAPI
import uvicorn
from app.core.config import STORE_BACKEND
from app.db.mongodb import connect_to_mongo, close_mongo_connection
from app.endpoints import vehicle_endpoint, equipment_endpoint
 
app = FastAPI(title="Fleet Inspection - Equipment & Anomaly Tracking")
 

app.include_router(vehicle_endpoint.router, prefix="/api")
app.include_router(equipment_endpoint.router, prefix="/api")




@app.on_event("startup")
async def startup():
    if STORE_BACKEND == "mongo":
        await connect_to_mongo()


 
@app.on_event("shutdown")
async def shutdown():
    if STORE_BACKEND == "mongo":
        await close_mongo_connection()
 
@app.get("/")
async def root():
    return {"message": "Fleet Inspection API running"}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000)

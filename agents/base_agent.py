from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import time
import uuid
import structlog

logger = structlog.get_logger()


class BaseAgent(ABC):
    def __init__(self, name: str):
        self.name = name
        self.execution_id = str(uuid.uuid4())

    @abstractmethod
    async def execute(self, input_data: Dict[str, Any], session_id: str) -> Dict[str, Any]:
        """Execute the agent's main functionality"""
        pass

    async def run(self, input_data: Dict[str, Any], session_id: str) -> Dict[str, Any]:
        """Wrapper method that handles logging and timing"""
        start_time = time.perf_counter()

        try:
            logger.info(f"Starting agent {self.name}",
                        session_id=session_id,
                        agent=self.name,
                        execution_id=self.execution_id)

            result = await self.execute(input_data, session_id)

            execution_time_ms = int((time.perf_counter() - start_time) * 1000)
            logger.info(f"Completed agent {self.name}",
                        session_id=session_id,
                        agent=self.name,
                        execution_time_ms=execution_time_ms)

            return result

        except Exception as e:
            execution_time_ms = int((time.perf_counter() - start_time) * 1000)
            logger.error(f"Agent {self.name} failed",
                         session_id=session_id,
                         agent=self.name,
                         error=str(e),
                         execution_time_ms=execution_time_ms)
            raise

    def log(self, message: str, **kwargs):
        """Simple logging method for agents"""
        logger.info(message, agent=self.name, **kwargs)

    def validate_input(self, input_data: Dict[str, Any], required_fields: list) -> None:
        """Validate that required fields are present in input"""
        missing_fields = [field for field in required_fields if field not in input_data]
        if missing_fields:
            raise ValueError(f"Missing required fields: {missing_fields}")

    def format_output(self, data: Dict[str, Any], metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Standard output format for all agents"""
        output = {
            "agent": self.name,
            "execution_id": self.execution_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": data
        }

        if metadata:
            output["metadata"] = metadata

        return output

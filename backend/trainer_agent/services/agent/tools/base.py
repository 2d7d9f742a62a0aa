"""
Base Tool interface.
Provides the foundation for tools the agent loop can call.
"""
from typing import Any, ClassVar, Dict
from dataclasses import dataclass


@dataclass
class Tool:
    """
    Base class for callable tools.
    
    Tools let the agent perform side effects (persisting goals, ...)
    during its tool-calling loop. Subclasses declare their JSON schema
    in ``parameters`` and the status text streamed to the client in
    ``status_message``.
    """
    name: str
    description: str
    
    parameters: ClassVar[Dict[str, Any]] = {"type": "object", "properties": {}}
    status_message: ClassVar[Dict[str, str]] = {}
    
    @classmethod
    def function_schema(cls) -> Dict[str, Any]:
        """Return the tool schema in OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": cls.name,
                "description": cls.description,
                "parameters": cls.parameters,
            },
        }
    
    async def execute(self, **kwargs) -> Any:
        """
        Execute the tool with given parameters.
        
        Args:
            **kwargs: Tool-specific parameters
            
        Returns:
            Tool execution result
        """
        raise NotImplementedError("Subclasses must implement execute()")
    
    def format_result(self, result: Any) -> str:
        """One-line, human-readable summary of a result."""
        return str(result)

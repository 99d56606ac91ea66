from .react_agent import AgentState, EventSink, ModelCall, ReactAgent, history_messages

__all__ = ["AgentState", "EventSink", "ModelCall", "ReactAgent", "history_messages"]

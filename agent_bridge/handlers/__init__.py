"""
Handlers for the two legs of a bridge session.

Key components:
- agent_events: Classifies upstream frames into agent speech or normalized
  control events, with explicit field precedence for role, text and finality.
- intake_handlers: Best-effort shadow intake extraction from user transcripts
  (classification, name, phone, email, incident, date, location).
- client_handlers: Interprets browser text control messages (start, stop)
  according to the configured client text policy.

Usage examples:
```python
from agent_bridge.handlers.agent_events import classify
from agent_bridge.handlers.intake_handlers import ingest_utterance
from agent_bridge.models import ShadowIntakeRecord, TranscriptFragmentEvent

record = ShadowIntakeRecord()

event = classify('{"type":"UserResponse","role":"user","content":"My name is Jordan Smith"}')
if isinstance(event, TranscriptFragmentEvent):
    ingest_utterance(record, event.text)

assert record.full_name == "Jordan Smith"
```
"""

TRACE = "trace"
REASONING = "reasoning"
CHUNK = "chunk"
ERROR = "error"
RESULT = "result"
DONE = "done"

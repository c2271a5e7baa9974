"""
JSONWire — Demo Greeting API
==============================

What:  A small API showing the handler conventions end to end.
How:   Handler methods are discovered by register_all():

           POST /api/greeting/hello    {"name": "alice"} → {"data": {"message": ...}}
           POST /api/greeting/visits   → count of calls in this session

       Invalid parameters are reported as E400 with the code "EBadName".
"""

from jsonwire.exceptions import E400, DecodeError, failed
from jsonwire.request import Context, Request
from jsonwire.schemas.service import HelloArgs, HelloReply
from jsonwire.sessions import get_session

SESSION_KEY = "sess"

EBadName = E400.set_data("You must send a JSON object with a non-empty name.").set_code("EBadName")


class GreetingAPI:
    async def hello(self, ctx: Context, req: Request) -> HelloReply:
        try:
            args = await req.decode(HelloArgs)
        except DecodeError as e:
            raise failed(e, EBadName)

        return HelloReply(message=f"Hello, {args.name}")

    async def visits(self, ctx: Context, req: Request) -> HelloReply:
        sess = get_session(req, SESSION_KEY)
        if sess is None:
            return HelloReply(message="Sessions are unavailable")

        count, _ = sess.get("visits")
        count = (count or 0) + 1
        sess.set("visits", count)
        await sess.save()
        return HelloReply(message="Welcome back" if count > 1 else "Welcome", visits=count)

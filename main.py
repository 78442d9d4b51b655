#!/usr/bin/env python3
from __future__ import annotations

import asyncio
import logging
import os
import traceback
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, JSONResponse

from bots import build_agent
from config import MATCH_CONFIG, SIM_CONFIG
from simulator import MatchRunner
from ui_html import HTML_PAGE
from world import FIELD_HEIGHT, FIELD_WIDTH, zone_presence

TICK_DELAY: float = float(SIM_CONFIG.get("tick_delay", 0.25))
RESTART_DELAY: float = float(SIM_CONFIG.get("restart_delay", 2.0))
LOG_LEVEL: str = str(SIM_CONFIG.get("log_level", "INFO")).upper()

# Match setup from JSON (None = random per match)
MATCH_TEAMS: int = int(MATCH_CONFIG.get("teams", 2))
MATCH_AGENTS: List[str] = list(MATCH_CONFIG.get("agents", []))
MATCH_DRONES: Optional[int] = MATCH_CONFIG.get("drones_per_team")
MATCH_ZONES: Optional[int] = MATCH_CONFIG.get("zones")
MATCH_SEED: Optional[int] = MATCH_CONFIG.get("seed")

TEAM_COLORS = ["#ff5555", "#8be9fd", "#f1fa8c", "#50fa7b", "#bd93f9", "#ffb86c"]

_simulation_task: asyncio.Task | None = None


def new_match(match_no: int = 1) -> MatchRunner:
    kinds = [MATCH_AGENTS[tid] if tid < len(MATCH_AGENTS) else "task_based" for tid in range(MATCH_TEAMS)]
    seed = None if MATCH_SEED is None else int(MATCH_SEED) + match_no - 1
    runner = MatchRunner(
        [build_agent(kind, tid) for tid, kind in enumerate(kinds)],
        drones_per_team=MATCH_DRONES,
        num_zones=MATCH_ZONES,
        seed=seed,
    )
    runner.initialize()
    return runner


@asynccontextmanager
async def lifespan(app: FastAPI):
    await start_simulation()
    try:
        yield
    finally:
        if _simulation_task:
            _simulation_task.cancel()
            await asyncio.gather(_simulation_task, return_exceptions=True)
        match.dispose()


app = FastAPI(lifespan=lifespan)

print(">>> Starting drone contest with TICK_DELAY =", TICK_DELAY)

match: MatchRunner = new_match()
match_lock = asyncio.Lock()
MATCH_COUNTER = 1


def team_color(team_id: Optional[int]) -> str:
    if team_id is None:
        return "#44475a"
    return TEAM_COLORS[team_id % len(TEAM_COLORS)]


def state_payload(runner: MatchRunner) -> dict:
    state = runner.state
    summary = runner.last_summary
    return {
        "match": MATCH_COUNTER,
        "tick_delay": TICK_DELAY,
        "tick_delay_ms": int(TICK_DELAY * 1000),
        "turn": state.turn,
        "remaining_turns": state.remaining_turns,
        "finished": state.finished,
        "field": {"width": FIELD_WIDTH, "height": FIELD_HEIGHT},
        "zones": [
            {"id": z.id, "x": z.center.x, "y": z.center.y, "radius": z.radius, "owner": z.owner}
            for z in state.zones
        ],
        "drones": [
            {
                "team_id": d.team_id,
                "id": d.id,
                "x": d.position.x,
                "y": d.position.y,
                "prev_x": d.previous_position.x,
                "prev_y": d.previous_position.y,
            }
            for d in state.all_drones()
        ],
        "teams": [
            {
                "id": team.id,
                "agent": getattr(runner.agents[team.id], "kind", type(runner.agents[team.id]).__name__),
                "color": team_color(team.id),
                "score": state.scores[team.id],
            }
            for team in state.teams
        ],
        "events": state.events[-30:],
        "last_turn": (
            {"captures": summary.captures, "losses": summary.losses, "owned": summary.owned}
            if summary is not None
            else None
        ),
    }


@app.get("/")
async def index():
    """Lightweight health endpoint for the backend."""
    return JSONResponse({"status": "ok", "service": "drone-contest"})


@app.get("/view")
async def view():
    return HTMLResponse(HTML_PAGE)


@app.get("/state")
async def state_endpoint():
    async with match_lock:
        data = state_payload(match)
        data["ai_state"] = [
            agent.debug_state() if hasattr(agent, "debug_state") else {"team_id": agent.team_id}
            for agent in match.agents
        ]
    return JSONResponse(data)


@app.get("/history")
async def history_endpoint():
    """Events of the match in progress."""
    async with match_lock:
        data = [
            {"turn": ev.turn, "kind": ev.kind, "zones": ev.zones, "teams": ev.teams, "text": ev.text}
            for ev in match.state.history
        ]
    return JSONResponse(data)


@app.get("/zone/{zone_id}")
async def zone_detail(zone_id: int):
    """Return current zone status plus its ownership history."""
    async with match_lock:
        state = match.state
        zone = next((z for z in state.zones if z.id == zone_id), None)
        if zone is None:
            return JSONResponse({"error": "not found"}, status_code=404)
        data = {
            "id": zone.id,
            "x": zone.center.x,
            "y": zone.center.y,
            "radius": zone.radius,
            "owner": zone.owner,
            "presence": {str(tid): n for tid, n in sorted(zone_presence(state, zone).items())},
            "history": [
                {"turn": ev.turn, "kind": ev.kind, "teams": ev.teams, "text": ev.text}
                for ev in state.history
                if zone.id in ev.zones
            ],
        }
    return JSONResponse(data)


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    print("WS: incoming connection")
    await ws.accept()
    print("WS: client accepted")
    try:
        while True:
            async with match_lock:
                payload = state_payload(match)
            await ws.send_json(payload)
            await asyncio.sleep(TICK_DELAY)
    except WebSocketDisconnect:
        print("WS: client disconnected")
        return
    except Exception:
        print("WS: unexpected error in websocket handler:")
        traceback.print_exc()
        return


async def start_simulation() -> None:
    global _simulation_task
    print(">>> startup: simulation task starting")

    async def run():
        global MATCH_COUNTER
        global match
        while True:
            try:
                async with match_lock:
                    if not match.finished:
                        match.step()
                        if match.state.turn % 20 == 0:
                            print(f"SIM: turn {match.state.turn}, scores={match.scores}")
                        finished = False
                    else:
                        finished = True
                        print(
                            f"SIM: match {MATCH_COUNTER} over, winner=Team {match.winner_id} "
                            f"scores={match.scores}; restarting after delay."
                        )

                if finished:
                    await asyncio.sleep(RESTART_DELAY)
                    async with match_lock:
                        match.dispose()
                        MATCH_COUNTER += 1
                        match = new_match(MATCH_COUNTER)
                    continue
                await asyncio.sleep(TICK_DELAY)
            except Exception:
                print("SIM: error in background loop:")
                traceback.print_exc()
                await asyncio.sleep(1.0)

    _simulation_task = asyncio.create_task(run())


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s:%(name)s:%(message)s")
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", SIM_CONFIG.get("port", 8000)))
    reload_flag = os.environ.get("RELOAD", "").lower() in {"1", "true", "yes", "on"}
    uvicorn.run("main:app", host=host, port=port, reload=reload_flag)

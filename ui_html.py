#!/usr/bin/env python3

HTML_PAGE = r"""
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <title>Drone Zone Contest</title>
  <style>
    :root {
      color-scheme: dark;
    }
    body {
      margin: 0;
      padding: 0;
      background: #050816;
      color: #e0e6ff;
      font-family: system-ui, -apple-system, BlinkMacSystemFont, sans-serif;
      display: flex;
      flex-direction: column;
      height: 100vh;
    }
    header {
      padding: 8px 16px;
      background: #090f24;
      border-bottom: 1px solid #1a2344;
      display: flex;
      justify-content: space-between;
      align-items: center;
      font-size: 14px;
    }
    .tick {
      font-family: monospace;
    }
    main {
      display: flex;
      flex: 1;
      overflow: hidden;
    }
    #map-container {
      flex: 2.2;
      padding: 12px;
      display: flex;
      flex-direction: column;
    }
    #canvas-wrapper {
      flex: 1;
      background: radial-gradient(circle at 20% 0%, #151b37 0, #050816 45%);
      border-radius: 12px;
      box-shadow: 0 0 30px rgba(0,0,0,0.7);
      position: relative;
      overflow: hidden;
    }
    #mapCanvas {
      width: 100%;
      height: 100%;
      display: block;
    }
    #legend {
      margin-top: 8px;
      font-size: 13px;
      color: #a2afd8;
    }
    #legend span {
      margin-right: 16px;
      display: inline-flex;
      align-items: center;
      gap: 4px;
    }
    .badge {
      width: 10px;
      height: 10px;
      border-radius: 999px;
      display: inline-block;
    }
    .badge-empty { background: #44475a; }

    #events-container {
      flex: 1;
      padding: 12px;
      border-left: 1px solid #1a2344;
      display: flex;
      flex-direction: column;
    }
    #events-title {
      font-size: 13px;
      margin-bottom: 6px;
      color: #a2afd8;
    }
    #events {
      flex: 1;
      background: #050b18;
      border-radius: 12px;
      padding: 8px 12px;
      margin: 0;
      list-style: none;
      overflow-y: auto;
      font-size: 13px;
    }
    #events li {
      padding: 3px 0;
    }
    #status {
      font-size: 12px;
      color: #8be9fd;
    }
  </style>
</head>
<body>
  <header>
    <div>Drone Zone Contest</div>
    <div>
      Turn: <span class="tick" id="tick">0</span>
      &nbsp;|&nbsp;
      <span id="status">Connecting...</span>
    </div>
  </header>

  <main>
    <section id="map-container">
      <div id="canvas-wrapper">
        <canvas id="mapCanvas"></canvas>
      </div>
      <div id="legend"></div>
    </section>

    <section id="events-container">
      <div id="events-title">Recent Events</div>
      <ul id="events"></ul>
    </section>
  </main>

  <script>
    const tickEl = document.getElementById("tick");
    const statusEl = document.getElementById("status");
    const canvas = document.getElementById("mapCanvas");
    const eventsEl = document.getElementById("events");
    const legendEl = document.getElementById("legend");

    function resizeCanvas() {
      const wrapper = document.getElementById("canvas-wrapper");
      const rect = wrapper.getBoundingClientRect();
      canvas.width = rect.width;
      canvas.height = rect.height;
    }

    window.addEventListener("resize", resizeCanvas);
    resizeCanvas();

    function render(data) {
      tickEl.textContent = `${data.turn} (${data.remaining_turns} left, match ${data.match})`;

      const ctx = canvas.getContext("2d");
      const w = canvas.width;
      const h = canvas.height;
      ctx.clearRect(0, 0, w, h);

      const padding = 20;
      const scale = Math.min((w - 2 * padding) / data.field.width, (h - 2 * padding) / data.field.height);

      const colors = {};
      data.teams.forEach(t => colors[t.id] = t.color);

      function proj(x, y) {
        return { x: padding + x * scale, y: padding + y * scale };
      }

      // field border
      ctx.save();
      ctx.strokeStyle = "rgba(120, 140, 220, 0.4)";
      ctx.lineWidth = 1;
      ctx.strokeRect(padding, padding, data.field.width * scale, data.field.height * scale);
      ctx.restore();

      // zones
      data.zones.forEach(zone => {
        const p = proj(zone.x, zone.y);
        const r = Math.max(4, zone.radius * scale);
        const color = zone.owner === null ? "#44475a" : (colors[zone.owner] || "#ffffff");

        ctx.save();
        ctx.beginPath();
        ctx.arc(p.x, p.y, r, 0, Math.PI * 2);
        ctx.fillStyle = color + "55";
        ctx.fill();
        ctx.strokeStyle = color;
        ctx.lineWidth = 2;
        ctx.stroke();
        ctx.restore();

        ctx.save();
        ctx.fillStyle = "rgba(220, 230, 255, 0.75)";
        ctx.font = "10px monospace";
        ctx.textAlign = "center";
        ctx.textBaseline = "top";
        ctx.fillText(zone.id, p.x, p.y + r + 2);
        ctx.restore();
      });

      // drones with their last move
      data.drones.forEach(drone => {
        const p = proj(drone.x, drone.y);
        const prev = proj(drone.prev_x, drone.prev_y);
        const color = colors[drone.team_id] || "#ffffff";

        ctx.save();
        ctx.strokeStyle = color + "88";
        ctx.lineWidth = 1;
        ctx.beginPath();
        ctx.moveTo(prev.x, prev.y);
        ctx.lineTo(p.x, p.y);
        ctx.stroke();
        ctx.beginPath();
        ctx.arc(p.x, p.y, 3, 0, Math.PI * 2);
        ctx.fillStyle = color;
        ctx.fill();
        ctx.restore();
      });

      // legend / scores
      legendEl.innerHTML = "";
      data.teams.forEach(t => {
        const span = document.createElement("span");
        span.innerHTML = `<span class="badge" style="background:${t.color}"></span> Team ${t.id} (${t.agent}): ${t.score}`;
        legendEl.appendChild(span);
      });
      const free = document.createElement("span");
      free.innerHTML = `<span class="badge badge-empty"></span> Unowned`;
      legendEl.appendChild(free);

      // events
      eventsEl.innerHTML = "";
      data.events.forEach(ev => {
        const li = document.createElement("li");
        li.textContent = ev;
        eventsEl.appendChild(li);
      });
      eventsEl.scrollTop = eventsEl.scrollHeight;
    }

    function connect() {
      const protocol = window.location.protocol === "https:" ? "wss" : "ws";
      const wsUrl = `${protocol}://${window.location.host}/ws`;
      const ws = new WebSocket(wsUrl);

      ws.onopen = () => {
        statusEl.textContent = "Connected";
      };

      ws.onmessage = (event) => {
        const data = JSON.parse(event.data);
        render(data);
      };

      ws.onclose = () => {
        statusEl.textContent = "Disconnected. Reconnecting...";
        setTimeout(connect, 2000);
      };

      ws.onerror = () => {
        statusEl.textContent = "Error. Reconnecting...";
        ws.close();
      };
    }

    connect();
  </script>
</body>
</html>
"""

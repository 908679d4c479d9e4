# autoaccept

`autoaccept` watches your screen for the match-found dialog. When it finds the accept button, it clicks the button for you. A small control page in your browser shows what the program is doing. The log lines and status texts on that page are in Japanese.

## How it works

1. An auto-watcher takes a screenshot once per second. While monitoring is already running, it skips that screenshot. It looks for the match-found screen in two ways:
   - template matching with `matching.png`;
   - if that fails, the share of near-white pixels near the centre of the screen.
2. When the auto-watcher finds that screen, it starts monitoring.
3. Monitoring takes a screenshot every 500 ms and looks for the accept button. It tries three methods in turn:
   - template matching with `accept_button.png` at several scales and thresholds;
   - clustering of teal-coloured pixels;
   - edge density.
4. Each candidate gets a verification score. If the score is above 0.2, the program clicks at that position.
5. After a click, the program waits five seconds. It then checks whether the match-found screen has gone. If it has, monitoring stops.
6. Monitoring also stops as soon as the match-found screen is no longer detected while the program is searching for the button.

The two template images are read from a resources directory. By default this is `resources/`, and it must contain:

- `accept_button.png`
- `matching.png`

If either file is missing or cannot be decoded, neither the auto-watcher nor monitoring will start.

## Requirements

- Python 3.10 or later.
- Screenshots taken through Pillow's `ImageGrab`.
- A way to click:
  - on Windows, PowerShell is used;
  - on every other system, `xdotool` must be on your `PATH`.

## Installation

```
pip install .
```

To run the test suite as well:

```
pip install ".[test]"
pytest
```

## Usage

```
autoaccept [--host HOST] [--port PORT] [--resources DIR] [--no-browser]
```

Options:

- `--host`: the address to listen on. The default is all interfaces.
- `--port`: the port to listen on. The default is 8081.
- `--resources`: the directory that holds the template images. The default is `resources`.
- `--no-browser`: do not open the control page.

The command starts the auto-watcher and serves the control page. About a second later it opens `http://localhost:<port>` in your browser. It uses `xdg-open` on Linux, `rundll32` on Windows and `open` on macOS.

### The control page

The control page has four buttons:

- **start**: starts monitoring immediately.
- **stop**: stops the current monitoring run.
- **test**: logs the following:
  - the screen size and the OS;
  - the template sizes;
  - detection timings and results;
  - whether clicking is supported.
- **clear**: empties the log view.

Log lines and status changes arrive over a WebSocket at `/ws`. The page sends each button press to the server as a JSON message, `{"action": "start"}`, `{"action": "stop"}` or `{"action": "test"}`. If the resources directory exists, its contents are served under `/resources/`.

## Using it from Python

You can also put the parts together yourself:

```python
from autoaccept.app import App
from autoaccept.controller import Controller
from autoaccept.detector import ImageDetector
from autoaccept.hub import Broadcaster
from autoaccept.server import Server

app = App(ImageDetector("resources"), Broadcaster(), Controller())
Server(app, "localhost", 8081, "resources").run()
```

### `autoaccept.detector`

- `ImageDetector(resource_dir)` takes the directory that holds the template images.
- `load_templates()` loads the two templates. It raises `TemplateError` if a file cannot be read or decoded.
- `capture_screen()` returns a screenshot of the primary display.
- `fast_detect_matching_screen(img)` returns a `bool`.
- `fast_detect_accept_button(img)` returns a `Point(x, y)`, or `None` if no button was found.
- `verify_accept_button(img, pos, scale)` returns a score. If no accept template is loaded, the score is 0.5. If the button region would fall outside the image, the score is 0.3.
- `is_accept_button_color(rgb)` and `color_difference(c1, c2)` are the colour tests the detector uses.

### `autoaccept.controller`

- `Controller(os_type)` takes the OS to act for. If you leave it out, the current system is used.
- `click_accept_button(x, y)` returns whether the click succeeded.
- `is_system_supported()` reports whether clicking is available.

### `autoaccept.hub`

- `Broadcaster` keeps the set of connected clients. Use `add()` and `remove()` to change it.
- `broadcast(message)` sends `message` as JSON to every client and drops any client whose send fails.
- `send_log(message)` and `update_status(status)` build the events with `log_message()` and `status_message()` and then broadcast them.

### `autoaccept.app`

`App` holds the monitoring state and has these methods:

- `start_monitoring()`
- `stop_monitoring()`
- `start_auto_watcher()`
- `stop_auto_watcher()`
- `test_environment()`

### `autoaccept.server`

`Server` has these methods:

- `create_app()` returns the aiohttp application.
- `open_browser(url)` opens `url` in the desktop browser.
- `run()` starts everything and serves until the program is stopped.

## What it does not do

- The detection thresholds and scan intervals are fixed. The only settings are the ones on the command line.
- The control page has no authentication. If you pass `--host`, bind it to `localhost` to keep the page off the network.
- Clicking is done with external tools. Without PowerShell or `xdotool`, every click fails and only gets logged.
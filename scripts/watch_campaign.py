#!/usr/bin/env python3
"""Follow a campaign's live dice activity from the terminal."""

import sys
import os
import argparse
import time
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sleeper.realtime.client import (
    CampaignView,
    ClientSession,
    SocketIOTransport,
    http_state_fetcher,
)
from sleeper.realtime.events import DayIncremented, DicePoolUpdated, RollComplete


class PrintingView(CampaignView):
    """Campaign view that echoes each applied event."""

    def load_snapshot(self, state):
        super().load_snapshot(state)
        print(f"\n{state['campaign']['name']} - day {self.current_day}")
        for character_id, character in sorted(self.characters.items()):
            dice = [d["die_result"] for d in self.unused_dice(character_id)]
            print(f"  {character['name']:<20} unused dice: {dice or '-'}")
        print(f"  Active challenges: {len(self.challenges)}")

    def apply(self, event):
        super().apply(event)
        if isinstance(event, RollComplete):
            roll = event.roll
            print(f"[roll] {event.character_name}: d6 {roll['modified_d6']} vs d20 {roll['d20_roll']} "
                  f"-> {roll['outcome'].upper()}")
        elif isinstance(event, DicePoolUpdated):
            name = self.characters.get(event.character_id, {}).get("name", event.character_id)
            print(f"[pool] {name}: {[d['die_result'] for d in event.pool['dice']]}")
        elif isinstance(event, DayIncremented):
            print(f"[day]  Day {event.current_day} begins, all pools are spent")
        else:
            print(f"[challenge] {event.action.value}: {event.challenge.get('description')}")


def main():
    parser = argparse.ArgumentParser(description="Watch a campaign's rolls as they happen")
    parser.add_argument("campaign_id", type=int, help="Campaign to follow")
    parser.add_argument("--user-id", type=int, required=True, help="Campaign member to connect as")
    parser.add_argument("--url", default="http://localhost:5001", help="Server base URL")
    args = parser.parse_args()

    print("=" * 50)
    print("SLEEPER SYSTEM - CAMPAIGN WATCH")
    print("=" * 50)

    session = ClientSession(
        PrintingView(args.campaign_id),
        SocketIOTransport(args.url, args.campaign_id, args.user_id),
        http_state_fetcher(args.url, args.campaign_id, args.user_id),
    )
    session.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        session.stop()


if __name__ == "__main__":
    main()

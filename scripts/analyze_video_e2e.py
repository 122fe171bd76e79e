import os
import sys
import time
import json
import requests

API_BASE = os.getenv("API_BASE", "http://localhost:8000")
API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")

# 분석 후 설명문 개선까지 순차 호출
def run_case(video_path: str) -> None:
    print(f"=== {video_path} ===")

    start_time = time.time()
    with open(video_path, "rb") as f:
        response = requests.post(
            f"{API_BASE}/api/video/analyze",
            files={"video": (os.path.basename(video_path), f)},
            data={"apiKey": API_KEY} if API_KEY else None,
            timeout=300,
        )
    elapsed = time.time() - start_time

    if response.status_code != 200:
        print(f"FAILED (HTTP {response.status_code}, {elapsed:.2f}s)")
        print(f"Response: {response.text}")
        return

    data = response.json()["data"]
    meta = data["meta"]
    print(f"DONE ({elapsed:.2f}s)")
    print(f"frame={meta['frame_number']} start_time={meta['start_time']}s bbox={meta['bbox']} ({meta['bbox_source']})")
    print(f"VA={data['VA']}")
    if data.get("warnings"):
        print(f"warnings={json.dumps(data['warnings'], ensure_ascii=False)}")

    refine = requests.post(
        f"{API_BASE}/api/video/analyzer-desc",
        json={
            "class_type": data["class_type"],
            "subject_description": data["subject_description"],
            "apiKey": API_KEY,
        },
        timeout=120,
    )
    if refine.status_code != 200:
        print(f"Refine FAILED (HTTP {refine.status_code}): {refine.text}")
        return
    print(f"Combined: {refine.json()['data']['combined_description']}")

if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: python scripts/analyze_video_e2e.py <video> [<video> ...]")
        sys.exit(1)

    for path in sys.argv[1:]:
        try:
            run_case(path)
        except requests.RequestException as e:
            print(f"ERROR: {e}")
        print("-" * 50)
        time.sleep(1)

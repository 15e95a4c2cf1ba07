import asyncio
import os
import sys

# Add project root to path so we can import app
sys.path.append(os.getcwd())

from app.config.settings import settings
from app.pipelines.analysis import build_analysis_services
from app.database import session_scope
from app.services import MediaKind, TranscodeError, TranscriptionError, VisualAnalysisError


async def main():
    file_path = "sample.webm"
    if len(sys.argv) > 1:
        file_path = sys.argv[1]
    kind = MediaKind(sys.argv[2]) if len(sys.argv) > 2 else MediaKind.AUDIO

    if not os.path.exists(file_path):
        print(f"File '{file_path}' not found. Please provide a path to a recording.")
        print("Usage: python scripts/transcribe_file.py [path/to/recording.webm] [audio|video]")
        return

    print(f"Reading {file_path}...")
    with open(file_path, "rb") as f:
        media_bytes = f.read()

    services = build_analysis_services(settings, session_scope)
    print(f"Uploading {len(media_bytes)} bytes to s3://{services.storage.bucket} ...")
    try:
        async with services.storage.stored_media(media_bytes, kind) as ref:
            result = await services.transcriber.transcribe(ref)
            print("\n--- Transcript Result ---")
            print(result.transcript)
            print("-------------------------")

            if kind is MediaKind.VIDEO:
                mp4_bytes = await services.transcoder.to_mp4(media_bytes)
                async with services.storage.stored_media(mp4_bytes, kind, extension="mp4") as mp4_ref:
                    signal = await services.face_detector.analyze_face(mp4_ref)
                print(f"Visual signal: {signal.value}")

    except (TranscodeError, TranscriptionError, VisualAnalysisError) as e:
        print(f"\nAnalysis Error: {e}")


if __name__ == "__main__":
    asyncio.run(main())
